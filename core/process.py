"""
Typed subprocess execution.

Every external command goes through run_command so callers decide on a
captured exit code instead of exceptions or substring matches.
"""

import shutil
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from config.defaults import COMMAND_TIMEOUT_SECONDS

# Shell conventions for "command not found" and "timed out"
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined, the way `cmd 2>&1` would read."""
        if self.stdout and self.stderr:
            return f"{self.stdout.rstrip()}\n{self.stderr}"
        return self.stdout or self.stderr

    def first_line(self) -> str:
        for line in self.output.splitlines():
            if line.strip():
                return line.strip()
        return ""

    def field(self, index: int) -> str:
        """Whitespace-separated field of the first line (0-based), or ""."""
        parts = self.first_line().split()
        return parts[index] if index < len(parts) else ""


# Signature shared by run_command and test doubles
CommandRunner = Callable[..., CommandResult]


def run_command(
    args: Sequence[str],
    *,
    capture: bool = True,
    input: str | None = None,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = COMMAND_TIMEOUT_SECONDS,
) -> CommandResult:
    """
    Run a command without a shell.

    Args:
        args: argv list
        capture: Capture stdout/stderr; when False output goes to the terminal
        input: Text written to stdin
        cwd: Working directory
        env: Full environment for the child
        timeout: Seconds before the child is killed (None waits forever)

    Returns:
        CommandResult; a missing binary is reported as exit code 127 and a
        timeout as 124, never as an exception.
    """
    argv = [str(a) for a in args]
    try:
        proc = subprocess.run(
            argv,
            capture_output=capture,
            text=True,
            input=input,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as e:
        return CommandResult(EXIT_NOT_FOUND, "", str(e))
    except subprocess.TimeoutExpired as e:
        out = e.stdout if isinstance(e.stdout, str) else ""
        return CommandResult(EXIT_TIMEOUT, out, f"timed out after {timeout}s")

    return CommandResult(
        returncode=int(proc.returncode),
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )


def which(name: str) -> str | None:
    """Path of an executable on PATH, like `command -v`."""
    return shutil.which(name)
