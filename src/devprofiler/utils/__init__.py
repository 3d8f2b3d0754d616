"""Shared helpers: git command runner, exception log and YAML mappings."""
