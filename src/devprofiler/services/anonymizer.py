"""
One-way anonymization of identifying strings.

Every identifying value in the export (author name and email, commit and
parent ids, file paths and file stems) is replaced by the hex SHA-256 digest
of its UTF-8 encoding. There is no salt: the same input gives the same token
in every run, which is what lets an external aggregator join profiles.
Short or common inputs can be recovered by a dictionary attack; that is a
known property of the format.
"""

import hashlib
from pathlib import PurePosixPath

TOKEN_LENGTH = 64


def hash_identifier(value: str) -> str:
    """Return the 64-character hex SHA-256 digest of value."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def anonymize_path(path: str) -> str:
    """Anonymize a full repository-relative path."""
    return hash_identifier(path)


def anonymize_filename(path: str) -> str:
    """
    Anonymize a file name while keeping its extension readable.

    The stem is hashed and the last extension is appended after a literal
    dot, so ``src/a.txt`` becomes ``hash("a") + ".txt"``. A file without an
    extension keeps the trailing dot (``Makefile`` -> ``hash("Makefile") + "."``)
    to stay compatible with existing consumers of the format. A name ending
    in a dot has an empty extension (``foo.`` -> ``hash("foo") + "."``) and a
    leading dot alone starts no extension (``.bashrc`` is all stem).

    Args:
        path: Repository-relative path using forward slashes

    Returns:
        The anonymized file name
    """
    name = PurePosixPath(path).name
    stem, _, extension = name.rpartition(".")
    if not stem:
        stem, extension = name, ""
    return hash_identifier(stem) + "." + extension
