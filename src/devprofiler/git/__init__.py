"""Git object store access for devprofiler."""

from .repository import (
    CommitInfo,
    DiffStats,
    FileDelta,
    RepositoryHandle,
    TreeDiff,
)

__all__ = [
    "CommitInfo",
    "DiffStats",
    "FileDelta",
    "RepositoryHandle",
    "TreeDiff",
]
