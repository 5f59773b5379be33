"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running git and
package-manager commands, plus the console logger used when no
orchestrator-supplied logger is available.
"""

from __future__ import annotations

import os
import subprocess
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import TextIO


def git(*args: str, cwd: Path | str | None = None, check: bool = True) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        cwd: Directory to run git in. Defaults to the process cwd.
        check: If True (default), raise on non-zero exit. Set to False
               for commands that may legitimately fail (e.g., tag lookup).

    Returns:
        Stdout from the git command with trailing whitespace removed.
    """
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=check
    )
    return result.stdout.rstrip()


def run(
    *args: str,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run an external command, copying its output to the given sinks.

    Unlike git(), the output is not returned for parsing; it is forwarded
    to ``stdout`` / ``stderr`` (the release context's sinks) so users can
    follow lockfile updates, publishing, etc.

    Args:
        *args: Command and arguments (e.g., "npm", "whoami").
        cwd: Working directory for the command.
        env: Extra environment variables, layered over the process env.
        stdout: Sink for the command's stdout (default: sys.stdout).
        stderr: Sink for the command's stderr (default: sys.stderr).
        check: If True (default), raise CalledProcessError on non-zero exit.
    """
    full_env = {**os.environ, **env} if env else None
    result = subprocess.run(
        args, cwd=cwd, env=full_env, capture_output=True, text=True, check=False
    )
    (stdout or sys.stdout).write(result.stdout)
    (stderr or sys.stderr).write(result.stderr)
    if check:
        result.check_returncode()
    return result


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate lifecycle phases in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


class ConsoleLogger:
    """Printf-style logger writing ``log`` to stdout and ``warn`` to stderr."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None):
        self._out = out
        self._err = err

    def log(self, msg: str, *args: object) -> None:
        print(_format(msg, args), file=self._out or sys.stdout)

    def warn(self, msg: str, *args: object) -> None:
        print(f"WARN: {_format(msg, args)}", file=self._err or sys.stderr)


def _format(msg: str, args: tuple[object, ...]) -> str:
    if not args:
        return msg
    try:
        return msg % args
    except TypeError:
        return " ".join([msg, *map(str, args)])
