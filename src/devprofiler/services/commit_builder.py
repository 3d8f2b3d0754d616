"""Assembly of exported commit records."""

import logging

from ..errors import CommitMetadataError
from ..git.repository import CommitInfo
from ..models import CommitRecord, DiffSummary
from .anonymizer import hash_identifier

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "<unknown>"


def build_commit_record(
    commit: CommitInfo,
    diff_summary: DiffSummary,
    repo_name: str,
    missing_author_policy: str = "fail",
) -> CommitRecord:
    """Build the exported record for one commit.

    Author name, author email, the commit id and every parent id are
    anonymized. The repository name and the commit time are exported as is.

    Args:
        commit: Parsed commit metadata
        diff_summary: Diff of the commit against its first parent
        repo_name: Plaintext repository name
        missing_author_policy: "fail" raises on a missing author name or
            email; "sentinel" exports the hash of ``<unknown>`` instead

    Returns:
        The CommitRecord ready for serialization

    Raises:
        CommitMetadataError: If author data is missing and the policy is "fail"
    """
    author_name = commit.author_name
    author_email = commit.author_email

    missing = [
        label
        for label, value in (("name", author_name), ("email", author_email))
        if value is None
    ]
    if missing:
        if missing_author_policy == "fail":
            raise CommitMetadataError(
                f"Commit is missing author {' and '.join(missing)}", commit.id
            )
        logger.warning(
            f"Commit {commit.id} is missing author {' and '.join(missing)}, "
            f"exporting placeholder"
        )
        author_name = author_name if author_name is not None else UNKNOWN_AUTHOR
        author_email = author_email if author_email is not None else UNKNOWN_AUTHOR

    return CommitRecord(
        commit_id=hash_identifier(commit.id),
        repo_name=repo_name,
        author_name=hash_identifier(author_name),
        author_email=hash_identifier(author_email),
        ts_secs=commit.time_seconds,
        ts_offset_mins=commit.offset_minutes,
        parents=[hash_identifier(parent) for parent in commit.parents],
        diff_info=diff_summary,
    )
