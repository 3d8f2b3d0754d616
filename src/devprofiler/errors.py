"""Exception classes for devprofiler.

Fatal conditions each have their own type and process exit code so that a
bad repository path can be told apart from corrupt commit metadata. Per-file
problems inside a diff are not exceptions: they are recorded as messages in
the exported error log and the walk continues.
"""

from typing import Optional


class DevProfilerError(Exception):
    """Base exception for fatal profiling errors."""

    exit_code = 1

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class RepositoryNotFoundError(DevProfilerError):
    """No git repository could be discovered from the given path."""

    exit_code = 2


class OutputSinkError(DevProfilerError):
    """The output file could not be created or written."""

    exit_code = 3


class CommitMetadataError(DevProfilerError):
    """A visited commit is missing required metadata (author name or email)."""

    exit_code = 4

    def __init__(
        self, message: str, commit_id: str, details: Optional[str] = None
    ):
        super().__init__(message, details)
        self.commit_id = commit_id


class GitCommandError(DevProfilerError):
    """A git plumbing command failed while reading history."""

    exit_code = 5


class ConfigurationError(DevProfilerError):
    """The configuration file is missing, unreadable or invalid."""

    exit_code = 6
