"""
Diff summarization for exported commits.

Turns a TreeDiff into the exported DiffSummary: aggregate counts straight
from git's diff stats plus one anonymized FileChangeRecord per delta whose
new-side path can be resolved. Deltas without a usable path are reported as
recoverable errors and left out of ``file_info`` while still being counted
in ``files_changed``.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..git.repository import TreeDiff
from ..models import DiffSummary, FileChangeRecord
from .anonymizer import anonymize_filename, anonymize_path
from .language_mapper import LanguageMapper

logger = logging.getLogger(__name__)


@dataclass
class SummaryResult:
    """A DiffSummary together with the recoverable errors found building it."""

    summary: DiffSummary
    errors: List[str] = field(default_factory=list)


class DiffSummarizer:
    """Builds DiffSummary records from tree diffs."""

    def __init__(self, language_mapper: LanguageMapper):
        self.language_mapper = language_mapper

    def summarize(self, diff: TreeDiff, commit_token: str) -> SummaryResult:
        """Summarize one diff.

        Args:
            diff: Deltas and stats between a commit and its first parent
            commit_token: Anonymized id of the commit, used in error messages
                so that no plaintext identifier reaches the export

        Returns:
            SummaryResult with the summary and any recoverable error messages
        """
        file_info: List[FileChangeRecord] = []
        errors: List[str] = []

        for index, delta in enumerate(diff.deltas):
            if delta.new_path is None:
                if delta.raw_path:
                    reason = "path is not valid UTF-8"
                else:
                    reason = "empty path"
                message = (
                    f"commit {commit_token}: skipped file change #{index} "
                    f"(status {delta.status}): {reason}"
                )
                logger.warning(message)
                errors.append(message)
                continue

            file_info.append(self.build_file_record(delta.new_path))

        summary = DiffSummary(
            insertions=diff.stats.insertions,
            deletions=diff.stats.deletions,
            files_changed=diff.stats.files_changed,
            file_info=file_info,
        )
        return SummaryResult(summary=summary, errors=errors)

    def build_file_record(self, path: str) -> FileChangeRecord:
        """Anonymize one changed path."""
        return FileChangeRecord(
            path_hash=anonymize_path(path),
            filename=anonymize_filename(path),
            v_language=self.language_mapper.detect(path),
        )
