"""
Scan a source tree for strings that look like committed secrets.

Usage: validate-secrets [root]

Matching is case-insensitive substring search, one pattern at a time, so the
output groups hits by pattern. Exits 1 when any pattern matched.
"""

import argparse
import fnmatch
import os
import sys
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from core import console
from core.console import BLUE, GREEN, RED, colorize

SECRET_PATTERNS: list[str] = [
    # API keys
    "ANTHROPIC_API_KEY=",
    "GITHUB_TOKEN=",
    "OPENAI_API_KEY=",
    "AWS_ACCESS_KEY",
    "AWS_SECRET_KEY",
    "AZURE_CLIENT_SECRET",
    "GCP_SERVICE_ACCOUNT",
    # Private keys
    "BEGIN RSA PRIVATE KEY",
    "BEGIN DSA PRIVATE KEY",
    "BEGIN EC PRIVATE KEY",
    "BEGIN OPENSSH PRIVATE KEY",
    "BEGIN PGP PRIVATE KEY",
    # Passwords
    "password=",
    "passwd=",
    "pwd=",
    # Tokens
    "bearer ",
    "token=",
    "auth=",
    # Connection strings
    "jdbc:",
    "mongodb://",
    "postgres://",
    "mysql://",
]

SKIP_DIRS = frozenset({".git", ".github", "node_modules", "vendor"})
SKIP_FILES = ("*.example", "*.md", "validate-secrets.sh", "secrets_scan.py", "test_secrets_scan.py")


@dataclass(frozen=True)
class SecretHit:
    path: str
    line_number: int
    line: str

    def __str__(self) -> str:
        return f"{self.path}:{self.line_number}:{self.line}"


@dataclass
class ScanReport:
    hits: dict[str, list[SecretHit]] = field(default_factory=dict)

    @property
    def patterns_found(self) -> int:
        return sum(1 for found in self.hits.values() if found)

    @property
    def exit_code(self) -> int:
        return 1 if self.patterns_found else 0


def is_skipped(name: str) -> bool:
    return any(fnmatch.fnmatch(name, pattern) for pattern in SKIP_FILES)


def iter_files(root: Path) -> Iterator[Path]:
    """Regular files under root, sorted, minus the skipped dirs and names."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            # FIFOs, sockets and device nodes would block or never end
            if not is_skipped(name) and path.is_file():
                yield path


def read_lines(path: Path) -> list[str] | None:
    """Text lines of a file, or None for binary or unreadable files."""
    try:
        data = path.read_bytes()
    except OSError:
        return None
    if b"\0" in data:
        return None
    return data.decode("utf-8", errors="replace").splitlines()


class SecretScanner:
    def __init__(self, root: Path, patterns: list[str] | None = None):
        self.root = root
        self.patterns = SECRET_PATTERNS if patterns is None else patterns

    def _display_path(self, path: Path) -> str:
        return f"./{path.relative_to(self.root).as_posix()}"

    def scan_pattern(self, pattern: str, files: dict[Path, list[str]]) -> list[SecretHit]:
        needle = pattern.lower()
        hits = []
        for path, lines in files.items():
            for number, line in enumerate(lines, start=1):
                if needle in line.lower():
                    hits.append(SecretHit(self._display_path(path), number, line))
        return hits

    def scan(self) -> ScanReport:
        files = {}
        for path in iter_files(self.root):
            lines = read_lines(path)
            if lines is not None:
                files[path] = lines

        report = ScanReport()
        for pattern in self.patterns:
            console.echo(f"{colorize('Checking for pattern: ', BLUE)}{pattern}")
            hits = self.scan_pattern(pattern, files)
            report.hits[pattern] = hits
            if hits:
                for hit in hits:
                    console.echo(str(hit))
                console.echo(colorize(f"{console.CROSS_MARK} Found potential secret: {pattern}", RED))
        return report


def print_results(report: ScanReport) -> None:
    console.echo()
    console.echo(colorize("=== Validation Results ===", BLUE))
    if report.patterns_found:
        console.echo(colorize(f"{console.CROSS_MARK} FAILED: Found {report.patterns_found} potential secret(s)", RED))
        console.echo()
        console.echo("Please review the findings above and:")
        console.echo("1. Remove any actual secrets from tracked files")
        console.echo("2. Add secret files to .gitignore")
        console.echo("3. Use environment variables or secret managers instead")
        console.echo("4. If false positive, update the scanner's exclusions")
    else:
        console.echo(colorize(f"{console.CHECK_MARK} PASSED: No secrets detected", GREEN))
    console.echo()


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    parser = argparse.ArgumentParser(prog="validate-secrets", description="Scan for committed secrets")
    parser.add_argument("root", nargs="?", default=".", type=Path)
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    console.echo(colorize("=== Secret Validation Scanner ===", BLUE))
    console.echo("Scanning for secret patterns in repository...")
    console.echo()

    report = SecretScanner(args.root).scan()
    print_results(report)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
