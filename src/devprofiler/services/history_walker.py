"""
History traversal for profiling.

Walks every commit reachable from HEAD, diffs each against its first parent
and yields one CommitRecord per exported commit, strictly in walk order.
Root commits follow the configured policy; commits whose first parent is
missing from the object store (shallow clones) are skipped with a warning.
With more than one worker, diffs are computed concurrently in bounded
windows and re-emitted in walk order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from contextlib import closing
from dataclasses import dataclass, field
from itertools import islice
from typing import Iterable, Iterator, List, Optional

from ..errors import GitCommandError
from ..git.repository import RepositoryHandle
from ..models import CommitRecord
from .anonymizer import hash_identifier
from .commit_builder import build_commit_record
from .diff_summarizer import DiffSummarizer

logger = logging.getLogger(__name__)

EXPORTED = "exported"
ROOT_SKIPPED = "root_skipped"
PARENT_MISSING = "parent_missing"


@dataclass
class CommitOutcome:
    """What happened to one visited commit."""

    commit_id: str
    status: str
    record: Optional[CommitRecord] = None
    errors: List[str] = field(default_factory=list)


@dataclass
class WalkStats:
    """Counters for a finished or interrupted walk."""

    visited: int = 0
    exported: int = 0
    roots_skipped: int = 0
    parents_missing: int = 0


class HistoryWalker:
    """Drives diff summarization and record building over the history."""

    WINDOW_PER_WORKER = 4

    def __init__(
        self,
        repository: RepositoryHandle,
        summarizer: DiffSummarizer,
        repo_name: str,
        root_commit_policy: str = "skip",
        missing_author_policy: str = "fail",
        walk_order: str = "native",
        workers: int = 1,
    ):
        self.repository = repository
        self.summarizer = summarizer
        self.repo_name = repo_name
        self.root_commit_policy = root_commit_policy
        self.missing_author_policy = missing_author_policy
        self.walk_order = walk_order
        self.workers = workers

        self.errors: List[str] = []
        self.stats = WalkStats()

    def records(self) -> Iterator[CommitRecord]:
        """Yield exported records in walk order.

        Recoverable errors are appended to ``self.errors`` as they are met.

        Raises:
            CommitMetadataError: If a commit lacks required author data
            GitCommandError: If reading history or computing a diff fails
        """
        # Closing the walk on exit stops git rev-list when the consumer
        # abandons the records or an error aborts the run
        with closing(self.repository.walk(self.walk_order)) as commit_ids:
            if self.workers > 1:
                outcomes = self._process_concurrently(commit_ids)
            else:
                outcomes = (self.process_commit(cid) for cid in commit_ids)

            with closing(outcomes):
                for outcome in outcomes:
                    self.stats.visited += 1
                    self.errors.extend(outcome.errors)

                    if outcome.status == ROOT_SKIPPED:
                        self.stats.roots_skipped += 1
                    elif outcome.status == PARENT_MISSING:
                        self.stats.parents_missing += 1
                    elif outcome.record is not None:
                        self.stats.exported += 1
                        yield outcome.record

    def _process_concurrently(
        self, commit_ids: Iterable[str]
    ) -> Iterator[CommitOutcome]:
        window = self.workers * self.WINDOW_PER_WORKER
        iterator = iter(commit_ids)
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="devprofiler-diff"
        ) as executor:
            while True:
                batch = list(islice(iterator, window))
                if not batch:
                    break
                # map() yields in submission order
                yield from executor.map(self.process_commit, batch)

    def process_commit(self, commit_id: str) -> CommitOutcome:
        """Diff, summarize and build the record for one commit."""
        commit = self.repository.find_commit(commit_id)

        if commit.first_parent is None and self.root_commit_policy == "skip":
            logger.info(f"Skipping root commit {commit_id}")
            return CommitOutcome(commit_id=commit_id, status=ROOT_SKIPPED)

        try:
            diff = self.repository.diff_to_parent(commit)
        except GitCommandError:
            if commit.first_parent and not self.repository.commit_exists(
                commit.first_parent
            ):
                logger.warning(
                    f"Skipping commit {commit_id}: parent {commit.first_parent} "
                    f"is not in the object store"
                )
                return CommitOutcome(commit_id=commit_id, status=PARENT_MISSING)
            raise

        result = self.summarizer.summarize(diff, hash_identifier(commit_id))
        record = build_commit_record(
            commit,
            result.summary,
            self.repo_name,
            missing_author_policy=self.missing_author_policy,
        )
        return CommitOutcome(
            commit_id=commit_id, status=EXPORTED, record=record, errors=result.errors
        )
