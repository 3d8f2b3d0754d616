"""
Shared pytest fixtures for devprofiler tests.

Provides throw-away git repositories with deterministic authors and
timestamps, and resets the process-wide exception logger between tests.
"""

import gzip
import json
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from devprofiler.utils.exception_logger import ExceptionLogger


class GitRepo:
    """Small helper for building test repositories commit by commit."""

    def __init__(self, path: Path):
        self.path = path
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("config", "user.name", "Test User")
        self.git("config", "user.email", "test@test.com")
        self.git("config", "commit.gpgsign", "false")
        self._clock = 1700000000

    def git(self, *args: str, env: Optional[Dict[str, str]] = None) -> str:
        full_env = os.environ.copy()
        if env:
            full_env.update(env)
        result = subprocess.run(
            ["git", *args],
            cwd=self.path,
            check=True,
            capture_output=True,
            text=True,
            env=full_env,
        )
        return result.stdout.strip()

    def write(self, relative_path: str, content: str) -> None:
        target = self.path / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    def commit(
        self,
        message: str,
        files: Optional[Dict[str, Optional[str]]] = None,
        author_name: str = "Test User",
        author_email: str = "test@test.com",
        timezone: str = "+0000",
    ) -> str:
        """Write files (None deletes), commit everything and return the commit id."""
        for relative_path, content in (files or {}).items():
            if content is None:
                (self.path / relative_path).unlink()
            else:
                self.write(relative_path, content)

        self._clock += 60
        date = f"{self._clock} {timezone}"
        self.git("add", "-A")
        self.git(
            "commit",
            "-q",
            "--allow-empty",
            "-m",
            message,
            env={
                "GIT_AUTHOR_NAME": author_name,
                "GIT_AUTHOR_EMAIL": author_email,
                "GIT_AUTHOR_DATE": date,
                "GIT_COMMITTER_NAME": author_name,
                "GIT_COMMITTER_EMAIL": author_email,
                "GIT_COMMITTER_DATE": date,
            },
        )
        return self.head()

    def head(self) -> str:
        return self.git("rev-parse", "HEAD")

    def current_branch(self) -> str:
        return self.git("rev-parse", "--abbrev-ref", "HEAD")


def read_export(path: Path) -> List[dict]:
    """Decompress an export and parse every line."""
    with gzip.open(path, "rt", encoding="utf-8") as f:
        return [json.loads(line) for line in f.read().splitlines()]


@pytest.fixture
def git_repo(tmp_path) -> GitRepo:
    """An empty git repository named 'sample-repo'."""
    return GitRepo(tmp_path / "sample-repo")


@pytest.fixture
def export_reader():
    return read_export


@pytest.fixture(autouse=True)
def reset_exception_logger():
    ExceptionLogger.reset()
    yield
    ExceptionLogger.reset()
