"""
Process — run one external command with a shell-style trace.

Responsibilities:
  - Log ``+ <command>`` before executing, like ``set -x``.
  - Let the child inherit stdout/stderr so its diagnostics reach the user.
  - Wait for completion with no timeout.
  - Map the outcome to a shell-compatible exit code.

Nothing here retries or interprets a failure.
"""
import logging
import shlex
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Shell conventions for commands that never started
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126
EXIT_SIGNAL_BASE = 128


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single traced command."""

    command: str
    exit_code: int
    duration_ms: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def format_command(cmd: List[str]) -> str:
    return shlex.join(cmd)


def trace(command: str) -> None:
    """Emit the trace line for a command about to run."""
    logger.info("+ %s", command)


def normalize_returncode(returncode: int) -> int:
    """subprocess reports death by signal N as -N; the shell reports 128+N."""
    if returncode < 0:
        return EXIT_SIGNAL_BASE - returncode
    return returncode


def run_traced(cmd: List[str], cwd: Optional[Path] = None) -> CommandResult:
    """
    Trace and execute *cmd*, blocking until it exits.

    A missing program is reported as exit code 127, one that exists but
    cannot be executed (permissions, bad format) as 126, rather than raised.
    """
    command = format_command(cmd)
    trace(command)

    t0 = time.monotonic()
    error = None
    try:
        completed = subprocess.run(cmd, cwd=str(cwd) if cwd else None)
        exit_code = normalize_returncode(completed.returncode)
    except FileNotFoundError as e:
        exit_code = EXIT_NOT_FOUND
        error = f"{cmd[0]}: command not found ({e.strerror})"
    except PermissionError as e:
        exit_code = EXIT_NOT_EXECUTABLE
        error = f"{cmd[0]}: {e.strerror}"
    except OSError as e:
        # ENOEXEC and friends: the program exists but cannot be run
        exit_code = EXIT_NOT_EXECUTABLE
        error = f"{cmd[0]}: {e.strerror or e}"
    duration = int((time.monotonic() - t0) * 1000)

    if error:
        logger.error(error)

    return CommandResult(
        command=command,
        exit_code=exit_code,
        duration_ms=duration,
        error=error,
    )


def run_quiet(cmd: List[str], timeout: int = 5) -> str:
    """Run a version query and return the first stdout line, or 'unknown'."""
    try:
        r = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.TimeoutExpired):
        return "unknown"
    lines = r.stdout.strip().splitlines()
    return lines[0] if r.returncode == 0 and lines else "unknown"
