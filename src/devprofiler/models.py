"""
Exported record types.

Each model serializes to exactly one JSON line of the output stream. Field
names are the wire format consumed downstream and must not be renamed.
"""

from typing import List

from pydantic import BaseModel, Field


class FileChangeRecord(BaseModel):
    """One changed file of a commit."""

    path_hash: str = Field(description="Anonymized repository-relative path")
    filename: str = Field(description="Anonymized stem + '.' + plaintext extension")
    v_language: str = Field(description="Detected language or the unknown placeholder")


class DiffSummary(BaseModel):
    """Diff of a commit against its first parent.

    ``files_changed`` comes from git's own diff stats while ``file_info``
    is built per delta; the two disagree when a delta's path cannot be
    resolved, and that difference is kept.
    """

    insertions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    files_changed: int = Field(default=0, ge=0)
    file_info: List[FileChangeRecord] = Field(default_factory=list)


class CommitRecord(BaseModel):
    """One exported commit."""

    commit_id: str
    repo_name: str
    author_name: str
    author_email: str
    ts_secs: int
    ts_offset_mins: int
    parents: List[str] = Field(default_factory=list)
    diff_info: DiffSummary


class RunMetadata(BaseModel):
    """First line of every export: who ran it and against what."""

    aliases: List[str]
    repos: List[str]


class ErrorLog(BaseModel):
    """Second line of every export: recoverable errors met during the walk."""

    errors: List[str] = Field(default_factory=list)


def to_json_line(record: BaseModel) -> str:
    """Serialize a record as a single newline-terminated JSON line."""
    return record.model_dump_json() + "\n"
