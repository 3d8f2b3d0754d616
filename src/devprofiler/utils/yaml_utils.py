"""YAML utilities for language mappings configuration."""

import yaml  # type: ignore
from pathlib import Path
from typing import Dict, Set
import logging

logger = logging.getLogger(__name__)

# Language identifier -> file extensions (lowercase, without the dot)
DEFAULT_LANGUAGE_MAPPINGS = {
    # Programming languages
    "python": ["py", "pyw", "pyi"],
    "javascript": ["js", "jsx", "mjs", "cjs"],
    "typescript": ["ts", "tsx"],
    "java": ["java"],
    "csharp": ["cs"],
    "c": ["c", "h"],
    "cpp": ["cpp", "cc", "cxx", "c++", "hpp", "hh", "hxx"],
    "go": ["go"],
    "rust": ["rs"],
    "php": ["php"],
    "ruby": ["rb"],
    "swift": ["swift"],
    "kotlin": ["kt", "kts"],
    "scala": ["scala"],
    "dart": ["dart"],
    "lua": ["lua"],
    "groovy": ["groovy", "gradle"],
    "pascal": ["pas", "pp"],
    "objective-c": ["m", "mm"],
    "haskell": ["hs"],
    "elixir": ["ex", "exs"],
    "erlang": ["erl", "hrl"],
    "clojure": ["clj", "cljs", "cljc"],
    "r": ["r"],
    "perl": ["pl", "pm"],
    # Web technologies
    "html": ["html", "htm"],
    "css": ["css"],
    "scss": ["scss"],
    "less": ["less"],
    "vue": ["vue"],
    "svelte": ["svelte"],
    # Markup and documentation
    "markdown": ["md", "markdown"],
    "xml": ["xml"],
    "latex": ["tex", "latex"],
    "rst": ["rst"],
    # Data and configuration
    "json": ["json"],
    "yaml": ["yaml", "yml"],
    "toml": ["toml"],
    "ini": ["ini", "cfg"],
    "sql": ["sql"],
    "protobuf": ["proto"],
    # Shell and scripting
    "shell": ["sh", "bash", "zsh"],
    "powershell": ["ps1", "psm1", "psd1"],
    "batch": ["bat", "cmd"],
    # Build files
    "cmake": ["cmake"],
    "makefile": ["mk"],
    # Other formats
    "csv": ["csv"],
}

# Language identifier -> exact file names (compared case-insensitively)
DEFAULT_FILENAME_MAPPINGS = {
    "dockerfile": ["dockerfile", "containerfile"],
    "makefile": ["makefile", "gnumakefile"],
    "cmake": ["cmakelists.txt"],
    "ruby": ["gemfile", "rakefile"],
}


def load_language_mappings_yaml(yaml_path: Path) -> Dict[str, Set[str]]:
    """
    Load language mappings from YAML file.

    The file maps a language identifier to a list of extensions (or a single
    extension string). Extensions are normalized to lowercase without a
    leading dot.

    Args:
        yaml_path: Path to the mappings file

    Returns:
        Dictionary mapping language identifiers to sets of extensions

    Raises:
        FileNotFoundError: If YAML file doesn't exist
        yaml.YAMLError: If YAML parsing fails
        ValueError: If the document is not a mapping
    """
    if not yaml_path.exists():
        raise FileNotFoundError(f"Language mappings file not found: {yaml_path}")

    try:
        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML file {yaml_path}: {e}")
        raise

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Language mappings must be a mapping: {yaml_path}")

    mappings: Dict[str, Set[str]] = {}
    for lang, extensions in data.items():
        if isinstance(extensions, list):
            mappings[str(lang)] = {_normalize_extension(e) for e in extensions}
        elif isinstance(extensions, str):
            mappings[str(lang)] = {_normalize_extension(extensions)}
        else:
            logger.warning(f"Invalid extension format for {lang}, skipping")

    return mappings


def _normalize_extension(extension) -> str:
    return str(extension).strip().lstrip(".").lower()
