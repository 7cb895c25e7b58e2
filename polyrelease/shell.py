"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running shell commands,
git and gh operations, plus output formatting helpers.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path


def git(*args: str, check: bool = True, cwd: str | Path | None = None) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "tag", "--list").
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., tag lookup).
        cwd: Directory to run in. Defaults to the current directory.

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(
        ["git", *args], capture_output=True, text=True, check=check, cwd=cwd
    )
    return result.stdout.strip()


def gh(*args: str, check: bool = True) -> str:
    """Run a GitHub CLI command and return stdout."""
    result = subprocess.run(["gh", *args], capture_output=True, text=True, check=check)
    return result.stdout.strip()


def run(
    *args: str,
    check: bool = True,
    cwd: str | Path | None = None,
    input: bytes | None = None,
    env: dict[str, str] | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run an arbitrary shell command.

    Unlike git(), this doesn't capture output - it streams directly to
    the terminal so users can see publish progress, etc.

    Args:
        *args: Command and arguments (e.g., "npm", "publish").
        check: If True (default), raise on non-zero exit.
        cwd: Directory to run the command in.
        input: Bytes to feed to the command's stdin (e.g., a password).
        env: Extra environment variables, added to the current environment.

    Returns:
        CompletedProcess with returncode for checking success.
    """
    merged = {**os.environ, **env} if env else None
    return subprocess.run(args, check=check, cwd=cwd, input=input, env=merged)


def which(name: str) -> bool:
    """Return True if an executable is available on PATH."""
    return shutil.which(name) is not None


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of a release run in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def info(msg: str) -> None:
    """Print an indented progress line."""
    print(f"  {msg}")


def warn(msg: str) -> None:
    """Print an indented warning line to stderr."""
    print(f"  Warning: {msg}", file=sys.stderr)
