"""
Read-only access to a git repository through git plumbing commands.

Provides repository discovery, history traversal from HEAD, raw commit
lookup and tree-to-tree diffs. All commands run through run_git_command()
so ownership and locale handling are uniform. Values that come from commit
objects or the index (author identity, paths) are kept as bytes until they
are decoded here, and undecodable values are reported as None rather than
silently replaced.
"""

import logging
import re
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from ..errors import CommitMetadataError, GitCommandError, RepositoryNotFoundError
from ..utils.git_runner import (
    discover_repository_root,
    get_git_environment,
    run_git_command,
)

logger = logging.getLogger(__name__)

# "Name <email> 1700000000 +0200"
_SIGNATURE_RE = re.compile(
    rb"^(?P<name>.*?) ?<(?P<email>[^>]*)> (?P<secs>-?\d+) (?P<tz>[+-]\d{4})$"
)
_TIME_RE = re.compile(rb"(?P<secs>-?\d+) (?P<tz>[+-]\d{4})$")

WALK_ORDER_FLAGS = {
    "native": [],
    "topo": ["--topo-order"],
    "date": ["--date-order"],
    "reverse": ["--reverse"],
}


@dataclass
class CommitInfo:
    """Raw metadata of a single commit object."""

    id: str
    tree: str
    parents: List[str]
    author_name: Optional[str]  # None when absent or not valid UTF-8
    author_email: Optional[str]
    time_seconds: int  # committer time
    offset_minutes: int

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None


@dataclass
class FileDelta:
    """One file-level change between two trees."""

    status: str  # git status letter: A, M, D, T, ...
    raw_path: bytes
    new_path: Optional[str]  # None when the path cannot be resolved


@dataclass
class DiffStats:
    """Aggregate line statistics for a whole diff."""

    insertions: int = 0
    deletions: int = 0
    files_changed: int = 0


@dataclass
class TreeDiff:
    """Deltas and aggregate stats of a tree-to-tree diff."""

    old: str
    new: str
    deltas: List[FileDelta] = field(default_factory=list)
    stats: DiffStats = field(default_factory=DiffStats)


def parse_offset_minutes(tz: bytes) -> int:
    """Convert a git timezone like b"-0130" to signed minutes (-90)."""
    sign = -1 if tz[:1] == b"-" else 1
    digits = tz[1:]
    return sign * (int(digits[:2]) * 60 + int(digits[2:4]))


def _decode(value: Optional[bytes]) -> Optional[str]:
    if value is None:
        return None
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return None


class RepositoryHandle:
    """A discovered git repository, used for the duration of one run."""

    def __init__(self, root: Path):
        """Initialize the handle.

        Args:
            root: Top-level work tree of the repository
        """
        self.root = Path(root)
        self._empty_tree_id: Optional[str] = None

    @classmethod
    def discover(cls, path: Path) -> "RepositoryHandle":
        """Open the repository containing path, walking upward like git does.

        Raises:
            RepositoryNotFoundError: If path is not inside a git work tree
        """
        path = Path(path)
        if not path.exists():
            raise RepositoryNotFoundError(f"Path does not exist: {path}")

        root = discover_repository_root(path)
        if root is None:
            raise RepositoryNotFoundError(f"Not a git repository: {path}")

        logger.debug(f"Discovered repository at {root} from {path}")
        return cls(root)

    def _git(self, args: List[str], text: bool = False) -> subprocess.CompletedProcess:
        try:
            return run_git_command(["git"] + args, cwd=self.root, check=True, text=text)
        except subprocess.CalledProcessError as e:
            stderr = e.stderr
            if isinstance(stderr, bytes):
                stderr = stderr.decode("utf-8", "replace")
            raise GitCommandError(
                f"git {' '.join(args)} failed", (stderr or "").strip() or None
            )
        except FileNotFoundError:
            raise GitCommandError("git executable not found")

    def head_commit(self) -> Optional[str]:
        """Resolve HEAD to a commit id, or None on an unborn branch."""
        result = run_git_command(
            ["git", "rev-parse", "--verify", "--quiet", "HEAD^{commit}"],
            cwd=self.root,
            check=False,
            text=True,
            log_failure=False,
        )
        head = result.stdout.strip()
        return head if result.returncode == 0 and head else None

    @property
    def empty_tree_id(self) -> str:
        """Id of the empty tree in this repository's hash algorithm."""
        if self._empty_tree_id is None:
            result = run_git_command(
                ["git", "hash-object", "-t", "tree", "--stdin"],
                cwd=self.root,
                check=True,
                text=True,
                input="",
            )
            self._empty_tree_id = result.stdout.strip()
        return self._empty_tree_id

    def walk(self, order: str = "native") -> Iterator[str]:
        """Yield every commit id reachable from HEAD.

        Ids are streamed from ``git rev-list`` as it produces them. An unborn
        HEAD yields nothing.

        Args:
            order: One of WALK_ORDER_FLAGS; "native" is git's default order

        Raises:
            ValueError: If order is unknown
            GitCommandError: If the traversal fails
        """
        if order not in WALK_ORDER_FLAGS:
            raise ValueError(f"Unknown walk order: {order}")

        head = self.head_commit()
        if head is None:
            logger.warning(f"HEAD of {self.root} has no commits")
            return

        cmd = ["git", "rev-list"] + WALK_ORDER_FLAGS[order] + [head]
        # stderr goes to a file so a chatty git can never block on a full pipe
        with tempfile.TemporaryFile() as stderr_file:
            process = subprocess.Popen(
                cmd,
                cwd=self.root,
                stdout=subprocess.PIPE,
                stderr=stderr_file,
                env=get_git_environment(self.root),
            )
            finished = False
            try:
                assert process.stdout is not None
                for line in process.stdout:
                    commit_id = line.strip().decode("ascii")
                    if commit_id:
                        yield commit_id
                finished = True
            finally:
                if process.stdout:
                    process.stdout.close()
                if not finished:
                    process.kill()
                returncode = process.wait()

            if finished and returncode != 0:
                stderr_file.seek(0)
                stderr = stderr_file.read().decode("utf-8", "replace").strip()
                raise GitCommandError("git rev-list failed", stderr or None)

    def commit_exists(self, commit_id: str) -> bool:
        """Check whether a commit object is present in the object store."""
        result = run_git_command(
            ["git", "cat-file", "-e", f"{commit_id}^{{commit}}"],
            cwd=self.root,
            check=False,
            log_failure=False,
        )
        return result.returncode == 0

    def find_commit(self, commit_id: str) -> CommitInfo:
        """Read and parse a commit object.

        Raises:
            GitCommandError: If the object cannot be read
            CommitMetadataError: If the object has no tree or committer time
        """
        raw = self._git(["cat-file", "commit", commit_id]).stdout
        return self.parse_commit(commit_id, raw)

    @staticmethod
    def parse_commit(commit_id: str, raw: bytes) -> CommitInfo:
        """Parse the raw bytes of a commit object.

        Only the headers (up to the first blank line) are read.
        """
        header, _, _message = raw.partition(b"\n\n")

        tree: Optional[str] = None
        parents: List[str] = []
        author_name: Optional[str] = None
        author_email: Optional[str] = None
        time_seconds: Optional[int] = None
        offset_minutes = 0

        for line in header.split(b"\n"):
            # Continuation lines belong to multi-line headers such as gpgsig
            if line.startswith(b" "):
                continue
            key, _, value = line.partition(b" ")
            if key == b"tree":
                tree = value.decode("ascii")
            elif key == b"parent":
                parents.append(value.decode("ascii"))
            elif key == b"author":
                match = _SIGNATURE_RE.match(value)
                if match:
                    author_name = _decode(match.group("name"))
                    author_email = _decode(match.group("email"))
            elif key == b"committer":
                match = _TIME_RE.search(value)
                if match:
                    time_seconds = int(match.group("secs"))
                    offset_minutes = parse_offset_minutes(match.group("tz"))

        if tree is None:
            raise CommitMetadataError("Commit has no tree", commit_id)
        if time_seconds is None:
            raise CommitMetadataError("Commit has no committer time", commit_id)

        return CommitInfo(
            id=commit_id,
            tree=tree,
            parents=parents,
            author_name=author_name,
            author_email=author_email,
            time_seconds=time_seconds,
            offset_minutes=offset_minutes,
        )

    def diff_trees(self, old: str, new: str) -> TreeDiff:
        """Diff two tree-ish objects (commits or trees).

        Deltas and aggregate stats come from two separate commands; rename
        detection is off so every delta has exactly one path.

        Raises:
            GitCommandError: If either diff command fails
        """
        base = ["diff-tree", "-r", "--no-renames", "--no-commit-id", "-z"]

        raw_output = self._git(base + ["--raw", old, new]).stdout
        numstat_output = self._git(base + ["--numstat", old, new]).stdout

        return TreeDiff(
            old=old,
            new=new,
            deltas=self._parse_raw(raw_output),
            stats=self._parse_numstat(numstat_output),
        )

    def diff_to_parent(self, commit: CommitInfo) -> TreeDiff:
        """Diff a commit against its first parent (or the empty tree for a root)."""
        old = commit.first_parent or self.empty_tree_id
        return self.diff_trees(old, commit.id)

    @staticmethod
    def _parse_raw(output: bytes) -> List[FileDelta]:
        """Parse ``diff-tree --raw -z`` output.

        Each entry is ``:<modes> <oids> <status>\\0<path>\\0``.
        """
        deltas: List[FileDelta] = []
        tokens = output.split(b"\0")
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if not token.startswith(b":"):
                i += 1
                continue
            status = token.split(b" ")[-1].decode("ascii", "replace")[:1]
            raw_path = tokens[i + 1] if i + 1 < len(tokens) else b""
            deltas.append(
                FileDelta(
                    status=status,
                    raw_path=raw_path,
                    new_path=_decode(raw_path) if raw_path else None,
                )
            )
            i += 2
        return deltas

    @staticmethod
    def _parse_numstat(output: bytes) -> DiffStats:
        """Parse ``diff-tree --numstat -z`` output into totals.

        Binary files report ``-`` for both counts and contribute a changed
        file with no lines.
        """
        stats = DiffStats()
        for entry in output.split(b"\0"):
            parts = entry.split(b"\t", 2)
            if len(parts) < 3:
                continue
            insertions, deletions = parts[0], parts[1]
            stats.files_changed += 1
            if insertions != b"-":
                stats.insertions += int(insertions)
            if deletions != b"-":
                stats.deletions += int(deletions)
        return stats

    def author_emails(self, limit: int = 200) -> List[str]:
        """Distinct author emails reachable from HEAD, most recent first."""
        if self.head_commit() is None:
            return []
        output = self._git(["log", "--format=%ae", "HEAD"], text=False).stdout
        seen: List[str] = []
        for line in output.split(b"\n"):
            email = _decode(line.strip())
            if email and email not in seen:
                seen.append(email)
                if len(seen) >= limit:
                    break
        return seen
