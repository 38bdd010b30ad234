"""
Liveness and readiness checks for the runner container.

Usage: health-check [live|liveness|ready|readiness]

Both verbs print a JSON document and signal the verdict through the exit
code (0 = healthy, 1 = unhealthy), the contract container orchestrators
key off of.

Readiness evaluates a fixed set of checks independently. Only four of them are
hard (assistant CLI, Go, Python, workspace); disk, MCP config, OTEL collector
and memory are informational and never flip the overall verdict.
"""

import json
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TextIO

from pydantic import BaseModel, ConfigDict, Field

from config.defaults import (
    MAX_MEMORY_PERCENT,
    MIN_FREE_DISK_GB,
    OTEL_PROCESS_PATTERN,
)
from config.loader import load_config_file
from config.settings import RunnerSettings
from core.exceptions import ConfigError

from .system import SystemProbe

LIVE_VERBS = ("live", "liveness")
READY_VERBS = ("ready", "readiness")


class HealthStatus(str, Enum):
    """Status of a single check or of the whole report."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    WARNING = "warning"
    INFO = "info"
    ERROR = "error"


class CheckResult(BaseModel):
    """One entry of the per-check breakdown; detail fields follow status."""

    model_config = ConfigDict(extra="allow", use_enum_values=True)

    status: HealthStatus


class HealthReport(BaseModel):
    """Overall verdict plus the breakdown it was derived from."""

    model_config = ConfigDict(use_enum_values=True)

    status: HealthStatus
    timestamp: str = Field(default_factory=lambda: utc_timestamp())
    checks: dict[str, Any] = Field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY.value

    @property
    def exit_code(self) -> int:
        return 0 if self.healthy else 1


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# =============================================================================
# Individual checks
# =============================================================================


def check_claude_cli(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    if not probe.which("claude"):
        return CheckResult(status=HealthStatus.UNHEALTHY, error="not found")
    result = probe.run(["claude", "--version"])
    if not result.ok:
        return CheckResult(status=HealthStatus.UNHEALTHY, error="version check failed")
    return CheckResult(status=HealthStatus.HEALTHY, version=result.first_line())


def check_go(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    if not probe.which("go"):
        return CheckResult(status=HealthStatus.UNHEALTHY, error="not found")
    # "go version go1.22.1 linux/amd64" -> go1.22.1
    version = probe.run(["go", "version"]).field(2)
    return CheckResult(status=HealthStatus.HEALTHY, version=version)


def check_python(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    if not probe.which("python3"):
        return CheckResult(status=HealthStatus.UNHEALTHY, error="not found")
    # "Python 3.12.2" -> 3.12.2
    version = probe.run(["python3", "--version"]).field(1)
    return CheckResult(status=HealthStatus.HEALTHY, version=version)


def check_disk_space(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    try:
        available = probe.disk_free_gb("/")
    except OSError as e:
        return CheckResult(status=HealthStatus.WARNING, message=f"disk usage unavailable: {e}")
    if available > MIN_FREE_DISK_GB:
        return CheckResult(status=HealthStatus.HEALTHY, available_gb=available)
    return CheckResult(
        status=HealthStatus.WARNING,
        available_gb=available,
        message="low disk space",
    )


def check_mcp_config(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    path = settings.mcp_config_path
    if not probe.is_file(path):
        return CheckResult(status=HealthStatus.WARNING, message="not configured")
    try:
        load_config_file(path)
    except ConfigError:
        return CheckResult(status=HealthStatus.WARNING, path=str(path), message="invalid JSON")
    return CheckResult(status=HealthStatus.HEALTHY, path=str(path))


def check_otel_collector(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    if probe.process_running(OTEL_PROCESS_PATTERN):
        return CheckResult(status=HealthStatus.HEALTHY, running=True)
    return CheckResult(
        status=HealthStatus.INFO,
        running=False,
        message="not started or disabled",
    )


def check_memory(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    percent = probe.memory_usage_percent()
    if percent is None:
        return CheckResult(status=HealthStatus.INFO, message="metrics unavailable")
    if percent < MAX_MEMORY_PERCENT:
        return CheckResult(status=HealthStatus.HEALTHY, usage_percent=percent)
    return CheckResult(
        status=HealthStatus.WARNING,
        usage_percent=percent,
        message="high memory usage",
    )


def check_workspace(settings: RunnerSettings, probe: SystemProbe) -> CheckResult:
    path = str(settings.workspace)
    if probe.is_writable_dir(settings.workspace):
        return CheckResult(status=HealthStatus.HEALTHY, path=path, writable=True)
    return CheckResult(status=HealthStatus.UNHEALTHY, path=path, writable=False)


CheckFn = Callable[[RunnerSettings, SystemProbe], CheckResult]

# (name, check, hard) in report order; only hard checks decide the verdict
READINESS_CHECKS: list[tuple[str, CheckFn, bool]] = [
    ("claude_cli", check_claude_cli, True),
    ("go", check_go, True),
    ("python", check_python, True),
    ("disk_space", check_disk_space, False),
    ("mcp_config", check_mcp_config, False),
    ("otel_collector", check_otel_collector, False),
    ("memory", check_memory, False),
    ("workspace", check_workspace, True),
]


# =============================================================================
# Reports
# =============================================================================


def check_liveness() -> HealthReport:
    """If this code runs, the container is alive."""
    return HealthReport(status=HealthStatus.HEALTHY, checks={"process": "running"})


def check_readiness(
    settings: RunnerSettings | None = None,
    probe: SystemProbe | None = None,
) -> HealthReport:
    """Run every readiness check (no short-circuit) and derive the verdict."""
    settings = settings or RunnerSettings.from_env()
    probe = probe or SystemProbe()

    checks: dict[str, Any] = {}
    healthy = True
    for name, check, hard in READINESS_CHECKS:
        result = check(settings, probe)
        checks[name] = result.model_dump()
        if hard and result.status == HealthStatus.UNHEALTHY.value:
            healthy = False

    status = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY
    return HealthReport(status=status, checks=checks)


def unknown_check(check_type: str) -> HealthReport:
    return HealthReport(
        status=HealthStatus.ERROR,
        checks={"message": f"Unknown check type: {check_type}"},
    )


def run_check(
    check_type: str,
    settings: RunnerSettings | None = None,
    probe: SystemProbe | None = None,
) -> HealthReport:
    """Dispatch a verb to the matching report."""
    if check_type in LIVE_VERBS:
        return check_liveness()
    if check_type in READY_VERBS:
        return check_readiness(settings, probe)
    return unknown_check(check_type)


def render_report(report: HealthReport) -> str:
    """Render the document layout probes have always parsed."""
    data = report.model_dump()
    return (
        "{\n"
        f'  "status": {json.dumps(data["status"])},\n'
        f'  "timestamp": {json.dumps(data["timestamp"])},\n'
        f'  "checks": {json.dumps(data["checks"])}\n'
        "}\n"
    )


def main(
    argv: list[str] | None = None,
    settings: RunnerSettings | None = None,
    probe: SystemProbe | None = None,
    stream: TextIO | None = None,
) -> int:
    """Entry point; prints the report and returns its exit code."""
    args = list(sys.argv[1:] if argv is None else argv)
    check_type = args[0] if args else "ready"

    report = run_check(check_type, settings, probe)
    (stream or sys.stdout).write(render_report(report))
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
