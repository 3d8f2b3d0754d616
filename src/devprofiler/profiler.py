"""
Profile export orchestration.

analyze_repository() runs one complete export: discover the repository,
walk its history, and stream anonymized commit records to the output file.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

import yaml  # type: ignore

from .config import ProfilerConfig
from .errors import ConfigurationError
from .git.repository import RepositoryHandle
from .models import RunMetadata
from .services.diff_summarizer import DiffSummarizer
from .services.history_walker import HistoryWalker, WalkStats
from .services.language_mapper import LanguageMapper
from .services.stream_exporter import StreamExporter

logger = logging.getLogger(__name__)


@dataclass
class ExportSummary:
    """Outcome of a finished export."""

    output_path: Path
    repository_root: Path
    repo_name: str
    stats: WalkStats
    errors: List[str] = field(default_factory=list)


def repository_name(path: Path) -> str:
    """Plaintext repository name: the last component of the given path."""
    name = Path(path).name
    if name in ("", ".", ".."):
        name = Path(path).resolve().name
    return name


def build_language_mapper(config: ProfilerConfig) -> LanguageMapper:
    try:
        return LanguageMapper(
            mappings_path=config.language_mappings_path,
            unknown_language=config.unknown_language,
        )
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Cannot load language mappings from {config.language_mappings_path}",
            str(e),
        )


def analyze_repository(
    user_email: str,
    path: Union[str, Path],
    config: Optional[ProfilerConfig] = None,
) -> ExportSummary:
    """Export the anonymized activity profile of the repository containing path.

    Args:
        user_email: Caller's email, exported in plaintext as the run alias
        path: Repository root or any path inside it, exported in plaintext
            exactly as given
        config: Run settings; defaults apply when omitted

    Returns:
        ExportSummary describing what was written

    Raises:
        RepositoryNotFoundError: If no repository contains path
        ConfigurationError: If the language mappings cannot be loaded
        OutputSinkError: If the output cannot be created or written
        CommitMetadataError: If a commit lacks author data (policy "fail")
        GitCommandError: If git fails while reading history
    """
    config = config or ProfilerConfig()
    repo_arg = str(path)
    path = Path(path)

    # Setup failures must happen before the output file exists
    repository = RepositoryHandle.discover(path)
    language_mapper = build_language_mapper(config)
    repo_name = repository_name(path)

    metadata = RunMetadata(aliases=[user_email], repos=[repo_arg])
    walker = HistoryWalker(
        repository=repository,
        summarizer=DiffSummarizer(language_mapper),
        repo_name=repo_name,
        root_commit_policy=config.root_commit_policy,
        missing_author_policy=config.missing_author_policy,
        walk_order=config.walk_order,
        workers=config.workers,
    )

    logger.info(f"Profiling {repository.root} as '{repo_name}'")
    with StreamExporter(config.output_path, metadata) as exporter:
        try:
            for record in walker.records():
                exporter.write_commit(record)
        finally:
            exporter.add_errors(walker.errors)

    logger.info(
        f"Visited {walker.stats.visited} commits, exported {walker.stats.exported}, "
        f"skipped {walker.stats.roots_skipped} root commits and "
        f"{walker.stats.parents_missing} commits whose parent is missing"
    )
    return ExportSummary(
        output_path=config.output_path,
        repository_root=repository.root,
        repo_name=repo_name,
        stats=walker.stats,
        errors=list(walker.errors),
    )
