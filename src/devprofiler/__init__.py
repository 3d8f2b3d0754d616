"""
devprofiler - privacy-preserving developer activity profiles from git history.

Walks the commit history of a repository, summarizes each commit's diff,
replaces identifying fields with SHA-256 digests and streams the result as
gzip-compressed JSON lines for aggregation elsewhere.
"""

__version__ = "0.2.0"
__author__ = "devprofiler contributors"
