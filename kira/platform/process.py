"""Subprocess execution with Result-based error handling.

This is the only module that calls ``subprocess`` directly. Every call is
captured and bounded by a timeout; a timeout is reported like any other
failure (returncode -1).

Usage:
    result = run(["git", "status", "--porcelain"], cwd=repo_path, timeout=30)
    match result:
        case Ok(stdout):
            print(stdout)
        case Err(error):
            print(f"Failed: {error.output}")
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from kira.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """Error from a failed subprocess execution.

    Attributes:
        command: The command that was executed.
        returncode: Exit code, or -1 if the process could not run or timed out.
        stdout: Standard output (may be empty).
        stderr: Standard error.
        timed_out: True if the command was killed by its timeout.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def output(self) -> str:
        """Combined stdout and stderr, stripped (git writes progress to both)."""
        parts = [s.strip() for s in (self.stdout, self.stderr) if s and s.strip()]
        return "\n".join(parts)

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"


def run(
    cmd: list[str],
    cwd: Path,
    extra_env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Execute a command and return stdout or error.

    Args:
        cmd: Command and arguments to execute.
        cwd: Working directory for the command.
        extra_env: Variables added on top of the current environment.
        timeout: Maximum seconds to wait (None for no limit).

    Returns:
        Ok(stdout) on success, Err(ProcessError) on failure.
    """
    env = None
    if extra_env:
        env = {**os.environ, **extra_env}

    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            stdin=subprocess.DEVNULL,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        stdout = e.stdout if isinstance(e.stdout, str) else ""
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=stdout,
                stderr=f"Command timed out after {timeout}s",
                timed_out=True,
            )
        )
    except OSError as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout="",
                stderr=str(e),
            )
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)
