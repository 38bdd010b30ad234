"""
Shared pytest fixtures for all tests.
"""
import logging
from pathlib import Path
from typing import Iterator

import pytest

from config.settings import RunnerSettings
from core.process import CommandResult


HEALTHY_TOOLS = {
    "claude": "1.0.30 (Claude Code)",
    "go": "go version go1.22.1 linux/amd64",
    "python3": "Python 3.12.2",
}


class FakeProbe:
    """In-memory stand-in for runner.system.SystemProbe."""

    def __init__(
        self,
        tools: dict | None = None,
        disk_gb: int = 20,
        memory_percent: int | None = 40,
        processes: tuple[str, ...] = (),
        workspace_writable: bool = True,
    ):
        self.tools = dict(HEALTHY_TOOLS if tools is None else tools)
        self.disk_gb = disk_gb
        self.memory_percent = memory_percent
        self.processes = processes
        self.workspace_writable = workspace_writable
        self.commands: list[list[str]] = []

    def which(self, name: str) -> str | None:
        return f"/usr/local/bin/{name}" if name in self.tools else None

    def run(self, args: list[str]) -> CommandResult:
        self.commands.append(list(args))
        output = self.tools.get(args[0])
        if output is None:
            return CommandResult(127, "", f"{args[0]}: not found")
        if isinstance(output, CommandResult):
            return output
        return CommandResult(0, output)

    def disk_free_gb(self, path: str = "/") -> int:
        return self.disk_gb

    def memory_usage_percent(self) -> int | None:
        return self.memory_percent

    def process_running(self, pattern: str) -> bool:
        return any(pattern in cmdline for cmdline in self.processes)

    def is_writable_dir(self, path: Path) -> bool:
        return self.workspace_writable

    def is_file(self, path: Path) -> bool:
        return Path(path).is_file()


class RecordingRunner:
    """
    CommandRunner double that records every call.

    `results` maps argv fragments (tuples matched as a contiguous slice of the
    argv) to a CommandResult; the longest matching fragment wins.
    """

    def __init__(self, results: dict | None = None, default: CommandResult | None = None):
        self.results = dict(results or {})
        self.default = default or CommandResult(0)
        self.calls: list[tuple[list[str], dict]] = []

    def __call__(self, args, **kwargs) -> CommandResult:
        argv = [str(a) for a in args]
        self.calls.append((argv, kwargs))
        for fragment in sorted(self.results, key=len, reverse=True):
            if _contains(argv, fragment):
                return self.results[fragment]
        return self.default

    @property
    def commands(self) -> list[list[str]]:
        return [argv for argv, _ in self.calls]

    def called_with(self, *fragment: str) -> bool:
        return any(_contains(argv, fragment) for argv in self.commands)


def _contains(argv: list[str], fragment: tuple) -> bool:
    n = len(fragment)
    return any(tuple(argv[i:i + n]) == tuple(fragment) for i in range(len(argv) - n + 1))


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    """configure_logging() replaces root handlers; put them back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture(autouse=True)
def clean_log_env(monkeypatch) -> None:
    """Keep the developer's LOG_LEVEL out of threshold assertions."""
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture
def settings(tmp_path: Path) -> RunnerSettings:
    """Settings rooted in a temporary home with an existing workspace."""
    home = tmp_path / "home"
    workspace = home / "workspace"
    workspace.mkdir(parents=True)
    return RunnerSettings(claude_home=home, workspace=workspace)


@pytest.fixture
def probe() -> FakeProbe:
    """Probe describing a fully provisioned container."""
    return FakeProbe()


@pytest.fixture
def runner() -> RecordingRunner:
    """Runner where every command succeeds with no output."""
    return RecordingRunner()
