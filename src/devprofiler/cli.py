"""Command line interface for devprofiler."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from . import __version__
from .config import ConfigManager
from .errors import DevProfilerError
from .git.repository import RepositoryHandle
from .profiler import analyze_repository
from .services.selection_prompt import SelectionOptions, run_selection_prompt
from .utils.exception_logger import ExceptionLogger

logger = logging.getLogger(__name__)

console = Console()


def _run_preflight_prompt(user_email: str, path: str) -> None:
    """Offer the interactive selection; failures here never stop the export."""
    aliases = [user_email]
    try:
        repository = RepositoryHandle.discover(Path(path))
        aliases += [e for e in repository.author_emails() if e != user_email]
    except DevProfilerError as e:
        logger.debug(f"Could not collect aliases for the prompt: {e}")

    selected = run_selection_prompt(
        SelectionOptions(aliases=aliases, repos=[path]), console=console
    )
    if selected:
        console.print(f"Selected {len(selected)} option(s)", style="dim")


@click.command()
@click.argument("user_email")
# Kept as the raw string: it is exported verbatim in the run metadata
@click.argument("path", type=click.Path())
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: devprofiler.jsonl.gz in the current directory)",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON config file (default: .devprofiler/config.json, searched upward)",
)
@click.option(
    "--include-root-commits",
    is_flag=True,
    default=None,
    help="Export root commits diffed against the empty tree instead of skipping them",
)
@click.option(
    "--workers",
    type=click.IntRange(1, 64),
    default=None,
    help="Threads computing diffs (output order is unchanged)",
)
@click.option(
    "--interactive/--no-interactive",
    default=False,
    help="Show the alias/repository selection prompt before exporting",
)
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__, prog_name="devprofiler")
def cli(
    user_email: str,
    path: str,
    output: Optional[Path],
    config_path: Optional[Path],
    include_root_commits: Optional[bool],
    workers: Optional[int],
    interactive: bool,
    verbose: bool,
):
    """Export an anonymized activity profile of the git repository at PATH.

    \b
    USER_EMAIL is stored in plaintext as the alias of this run.
    PATH may be the repository root or any directory inside it.

    \b
    Author names, emails, commit ids and file paths are replaced by SHA-256
    digests. The result is written as gzip-compressed JSON lines:
      line 1   run metadata (alias and repository path)
      line 2   recoverable errors met during the walk
      line 3+  one record per commit

    \b
    EXIT CODES:
      2  repository not found      3  output not writable
      4  corrupt commit metadata   5  git failure
      6  invalid configuration     1  unexpected error
    """
    ExceptionLogger.initialize(base_dir=Path.cwd()).install_thread_exception_hook()

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )

    try:
        manager = (
            ConfigManager(config_path)
            if config_path
            else ConfigManager.create_with_backtrack()
        )
        config = manager.load(
            overrides={
                "output_path": output,
                "root_commit_policy": "include" if include_root_commits else None,
                "workers": workers,
            }
        )

        if interactive:
            _run_preflight_prompt(user_email, path)

        summary = analyze_repository(user_email, path, config)
    except DevProfilerError as e:
        console.print(f"❌ {e}", style="red", markup=False)
        ExceptionLogger.get_instance().log_exception(e, context={"path": path})
        sys.exit(e.exit_code)

    console.print(
        f"✅ Exported {summary.stats.exported} commits from "
        f"'{summary.repo_name}' to {summary.output_path}",
        style="green",
        markup=False,
    )
    if summary.errors:
        console.print(
            f"⚠️  {len(summary.errors)} file change(s) could not be resolved "
            f"(recorded in the error log line)",
            style="yellow",
        )
    if verbose:
        console.print(
            f"Skipped {summary.stats.roots_skipped} root commit(s), "
            f"{summary.stats.parents_missing} commit(s) with missing parents",
            style="dim",
        )


def main():
    """Main entry point."""
    try:
        # Outside standalone mode click re-raises Abort instead of exiting 1
        cli(standalone_mode=False)
    except (click.exceptions.Abort, KeyboardInterrupt):
        console.print("\n❌ Interrupted by user", style="red")
        sys.exit(130)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        exception_logger = ExceptionLogger.get_instance()
        if exception_logger:
            exception_logger.log_exception(e)
        console.print(f"❌ Unexpected error: {str(e)}", style="red", markup=False)
        sys.exit(1)


if __name__ == "__main__":
    main()
