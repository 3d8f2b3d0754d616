"""
Centralized Git command runner with dubious ownership handling.

Every git invocation made by devprofiler goes through this module so that
repositories owned by another user (containers, CI, sudo) can still be read,
and so that failures are recorded by the exception logger with the full
command context.
"""

import os
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional


def get_git_environment(project_dir: Path) -> Dict[str, str]:
    """
    Build the environment for a git subprocess.

    safe.directory is injected as config entry 0 through git's
    GIT_CONFIG_COUNT mechanism; entries the caller already passes that way
    move up one slot so they still apply.

    Args:
        project_dir: Repository the command runs against

    Returns:
        A copy of os.environ with the git overrides applied
    """
    env = os.environ.copy()

    count = os.environ.get("GIT_CONFIG_COUNT", "")
    inherited = int(count) if count.isdigit() else 0
    for idx in reversed(range(inherited)):
        for part in ("KEY", "VALUE"):
            value = os.environ.get(f"GIT_CONFIG_{part}_{idx}")
            if value is not None:
                env[f"GIT_CONFIG_{part}_{idx + 1}"] = value

    env["GIT_CONFIG_KEY_0"] = "safe.directory"
    env["GIT_CONFIG_VALUE_0"] = str(project_dir.resolve())
    env["GIT_CONFIG_COUNT"] = str(inherited + 1)

    # Plumbing output must not depend on the user's locale or pager
    env["LC_ALL"] = "C"
    env["GIT_PAGER"] = "cat"

    return env


def run_git_command(
    cmd: List[str],
    cwd: Path,
    check: bool = True,
    capture_output: bool = True,
    text: bool = False,
    timeout: Optional[float] = None,
    log_failure: bool = True,
    **kwargs,
) -> subprocess.CompletedProcess:
    """
    Run a git command with proper environment handling for dubious ownership.

    Output is returned as raw bytes by default: commit metadata and paths are
    decoded by the caller, which decides what an undecodable value means.

    Args:
        cmd: Git command as a list (e.g., ["git", "rev-list", "HEAD"])
        cwd: Working directory for the command
        check: Whether to raise CalledProcessError on non-zero exit
        capture_output: Whether to capture stdout and stderr
        text: Whether to decode output as text
        timeout: Optional timeout in seconds
        log_failure: Whether to record a failed command in the exception log
        **kwargs: Additional arguments to pass to subprocess.run

    Returns:
        CompletedProcess instance with the command result

    Raises:
        ValueError: If the command does not start with 'git'
        subprocess.CalledProcessError: If check=True and command fails
        subprocess.TimeoutExpired: If timeout is exceeded
    """
    if not cmd or cmd[0] != "git":
        raise ValueError("Command must start with 'git'")

    env = get_git_environment(cwd)

    if "env" in kwargs:
        env.update(kwargs.pop("env"))

    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            check=check,
            capture_output=capture_output,
            text=text,
            timeout=timeout,
            env=env,
            **kwargs,
        )
    except subprocess.CalledProcessError as e:
        if log_failure:
            _record_git_error(
                "failed",
                cmd,
                cwd,
                returncode=e.returncode,
                stderr=_decode_stream(e.stderr),
            )
        raise
    except subprocess.TimeoutExpired:
        if log_failure:
            _record_git_error("timed out", cmd, cwd, timeout=timeout)
        raise


def _decode_stream(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _record_git_error(outcome: str, cmd: List[str], cwd: Path, **details) -> None:
    """Write a failed git invocation to the exception log, if one is active."""
    from .exception_logger import ExceptionLogger

    exception_logger = ExceptionLogger.get_instance()
    if exception_logger is None:
        return

    command = " ".join(cmd)
    context: Dict[str, Any] = {"git_command": command, "cwd": str(cwd)}
    context.update(details)
    exception_logger.log_exception(
        Exception(f"git command {outcome}: {command}"), context=context
    )


def discover_repository_root(start_path: Path) -> Optional[Path]:
    """
    Find the top-level work tree containing start_path.

    Walks upward the same way git itself does, so any path inside a
    repository resolves to its root.

    Args:
        start_path: A repository root or any directory/file inside one

    Returns:
        The repository root, or None if start_path is not inside a repository
    """
    start = Path(start_path)
    if start.is_file():
        start = start.parent
    if not start.is_dir():
        return None

    try:
        result = run_git_command(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=start,
            check=True,
            text=True,
            log_failure=False,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None

    toplevel = result.stdout.strip()
    return Path(toplevel) if toplevel else None
