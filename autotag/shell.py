"""Shell and git utilities.

Provides a thin wrapper around subprocess calls to git. Failures are raised
as GitCommandError so callers can decide whether a non-zero exit is an
error, an expected miss (e.g., unknown tag) or an authentication problem.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path


class GitCommandError(Exception):
    """A git invocation exited with a non-zero status."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(
            f"git {' '.join(self.args_list)} failed ({returncode}): {stderr}"
        )


def git(
    *args: str,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        cwd: Working directory for the command.
        env: Extra environment variables layered over os.environ.
        check: If True (default), raise GitCommandError on non-zero exit.
               Set to False for commands that may legitimately fail.

    Returns:
        Stripped stdout from the git command.
    """
    full_env = None
    if env:
        full_env = {**os.environ, **env}
    result = subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        cwd=cwd,
        env=full_env,
    )
    if check and result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr.strip())
    return result.stdout.strip()
