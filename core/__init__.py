"""
Core building blocks shared by the in-container and host-side tooling.

Contains transport-agnostic pieces: the exception hierarchy, typed subprocess
execution and console helpers.
"""

from .exceptions import (
    CommandExecError,
    ConfigError,
    InvalidLogLevelError,
    PrerequisiteError,
    RunnerToolsError,
    ToolNotFoundError,
)
from .process import CommandResult, CommandRunner, run_command, which

__all__ = [
    # Exceptions
    "RunnerToolsError",
    "InvalidLogLevelError",
    "ToolNotFoundError",
    "PrerequisiteError",
    "ConfigError",
    "CommandExecError",
    # Processes
    "CommandResult",
    "CommandRunner",
    "run_command",
    "which",
]
