"""
Version check for the DevOps tools baked into the runner image.

Compares each installed tool against the expected version table. A version
mismatch is a warning; only a missing tool fails the check.
"""

import json
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from config.loader import load_expected_versions
from core import console
from core.exceptions import ConfigError
from core.process import CommandResult

from .system import SystemProbe

UNKNOWN_VERSION = "unknown"


def _strip_v(value: str) -> str:
    return value[1:] if value.startswith("v") else value


def _first_line(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return ""


def _field(line: str, index: int) -> str:
    parts = line.split()
    return parts[index] if -len(parts) <= index < len(parts) else ""


def extract_aws(output: str) -> str:
    # aws-cli/2.15.17 Python/3.11.6 Linux/6.5.0 exe/x86_64.ubuntu.22
    token = _field(_first_line(output), 0)
    return token.split("/", 1)[1] if "/" in token else ""


def extract_terraform(output: str) -> str:
    # Terraform v1.7.3
    return _strip_v(_field(_first_line(output), 1))


def extract_tflint(output: str) -> str:
    # TFLint version 0.50.3
    return _strip_v(_field(_first_line(output), 2))


def extract_kubectl(output: str) -> str:
    # kubectl version --client=true --output=json
    try:
        data = json.loads(output)
    except json.JSONDecodeError:
        return ""
    return _strip_v(str(data.get("clientVersion", {}).get("gitVersion", "")))


def extract_helm(output: str) -> str:
    # version.BuildInfo{Version:"v3.14.2", GitCommit:"...", ...}
    match = re.search(r'Version:"v?([^"]+)"', output)
    return match.group(1) if match else ""


def extract_k9s(output: str) -> str:
    # Version:    v0.32.4
    match = re.search(r"Version:?\s+v?(\d[^\s]*)", output)
    return match.group(1) if match else ""


def extract_plain(output: str) -> str:
    # docker-compose version --short -> 2.24.6
    return _strip_v(_first_line(output))


def extract_yq(output: str) -> str:
    # yq (https://github.com/mikefarah/yq/) version v4.42.1
    return _strip_v(_field(_first_line(output), -1))


def extract_jq(output: str) -> str:
    # jq-1.7.1
    return _first_line(output).removeprefix("jq-")


@dataclass(frozen=True)
class ToolSpec:
    """How to ask a tool for its version and read the answer."""

    name: str
    command: list[str]
    extract: Callable[[str], str]


TOOL_SPECS: list[ToolSpec] = [
    ToolSpec("aws", ["aws", "--version"], extract_aws),
    ToolSpec("terraform", ["terraform", "version"], extract_terraform),
    ToolSpec("tflint", ["tflint", "--version"], extract_tflint),
    ToolSpec("kubectl", ["kubectl", "version", "--client=true", "--output=json"], extract_kubectl),
    ToolSpec("helm", ["helm", "version"], extract_helm),
    ToolSpec("k9s", ["k9s", "version"], extract_k9s),
    ToolSpec("docker-compose", ["docker-compose", "version", "--short"], extract_plain),
    ToolSpec("yq", ["yq", "--version"], extract_yq),
    ToolSpec("jq", ["jq", "--version"], extract_jq),
]


class ToolState(str, Enum):
    OK = "ok"
    MISMATCH = "mismatch"
    MISSING = "missing"


@dataclass
class ToolStatus:
    name: str
    state: ToolState
    expected: str
    actual: str | None = None


@dataclass
class VersionReport:
    """Per-tool outcome plus the counters printed in the summary."""

    tools: list[ToolStatus] = field(default_factory=list)

    def count(self, state: ToolState) -> int:
        return sum(1 for t in self.tools if t.state == state)

    @property
    def total(self) -> int:
        return len(self.tools)

    @property
    def exit_code(self) -> int:
        return 1 if self.count(ToolState.MISSING) else 0


def read_version(spec: ToolSpec, result: CommandResult) -> str:
    """Extract a version from command output, or "unknown"."""
    if not result.ok:
        return UNKNOWN_VERSION
    try:
        version = spec.extract(result.stdout or result.output)
    except (ValueError, AttributeError, IndexError):
        version = ""
    return version.strip() or UNKNOWN_VERSION


def check_tool(spec: ToolSpec, expected: str, probe: SystemProbe) -> ToolStatus:
    if not probe.which(spec.name):
        return ToolStatus(spec.name, ToolState.MISSING, expected)

    actual = read_version(spec, probe.run(spec.command))
    state = ToolState.OK if actual == expected else ToolState.MISMATCH
    return ToolStatus(spec.name, state, expected, actual)


def check_versions(
    expected: dict[str, str],
    probe: SystemProbe | None = None,
    specs: list[ToolSpec] | None = None,
) -> VersionReport:
    probe = probe or SystemProbe()
    report = VersionReport()
    for spec in specs or TOOL_SPECS:
        report.tools.append(check_tool(spec, expected.get(spec.name, UNKNOWN_VERSION), probe))
    return report


def print_status(status: ToolStatus) -> None:
    if status.state == ToolState.MISSING:
        console.fail(f"{status.name}: NOT FOUND")
    elif status.state == ToolState.MISMATCH:
        console.warn(f"{status.name}: {status.actual} (expected: {status.expected})")
    else:
        console.ok(f"{status.name}: {status.actual}")


def print_summary(report: VersionReport) -> None:
    missing = report.count(ToolState.MISSING)
    mismatched = report.count(ToolState.MISMATCH)

    console.echo()
    console.banner("Summary")
    console.echo(f"Total tools checked:     {report.total}")
    console.echo(console.colorize(f"Tools OK:                {report.count(ToolState.OK)}", console.GREEN))
    if missing:
        console.echo(console.colorize(f"Tools missing:           {missing}", console.RED))
    if mismatched:
        console.echo(console.colorize(f"Version mismatches:      {mismatched}", console.YELLOW))
    console.rule()

    if missing:
        console.echo(console.colorize("ERROR: Some required tools are missing!", console.RED))


def main(argv: list[str] | None = None, probe: SystemProbe | None = None) -> int:
    """Entry point. Optional first argument: YAML file overriding expected versions."""
    args = list(sys.argv[1:] if argv is None else argv)

    try:
        expected = load_expected_versions(Path(args[0]) if args else None)
    except ConfigError as e:
        console.echo(console.colorize(f"ERROR: {e}", console.RED), sys.stderr)
        return 1

    console.banner("DevOps Tools Version Check")
    console.echo()

    report = check_versions(expected, probe)
    for status in report.tools:
        print_status(status)

    print_summary(report)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
