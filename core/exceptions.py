"""
Core domain exceptions.

These exceptions are transport-agnostic; command-line entry points catch them
at the top level and convert them into log lines and exit codes.
"""


class RunnerToolsError(Exception):
    """Base exception for all runner tooling errors."""

    pass


class InvalidLogLevelError(RunnerToolsError, ValueError):
    """Raised when a log level is outside DEBUG/INFO/WARN/ERROR/FATAL."""

    def __init__(self, level: str, valid: tuple[str, ...]):
        self.level = level
        self.valid = valid
        super().__init__(f"Invalid log level: {level}. Valid levels: {', '.join(valid)}")


class ToolNotFoundError(RunnerToolsError):
    """Raised when a required binary is not on PATH."""

    def __init__(self, tool: str, label: str | None = None):
        self.tool = tool
        super().__init__(f"{label or tool} not found!")


class PrerequisiteError(RunnerToolsError):
    """Raised when a host-side prerequisite (docker, compose file, ...) is missing."""

    pass


class ConfigError(RunnerToolsError):
    """Raised when a configuration file cannot be read or validated."""

    pass


class CommandExecError(RunnerToolsError):
    """Raised when the final command cannot replace the entrypoint process."""

    def __init__(self, command: str, cause: OSError):
        self.command = command
        self.cause = cause
        super().__init__(f"Failed to execute command {command}: {cause}")
