"""
Security checks for the runner image.

- SecuritySuite: hardening assertions (non-root user, no sudo, PID limits,
  file ownership, ...), each run in a fresh container.
- TrivyScanner: vulnerability scan of the image with Trivy, installing a
  pinned Trivy release into ~/.local/bin when it is missing.
"""

import argparse
import os
import stat
import sys
import tarfile
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from config.defaults import (
    DEFAULT_CLAUDE_UID,
    DEFAULT_CLAUDE_USER,
    DEFAULT_SCAN_SEVERITY,
    LOCAL_IMAGE_NAME,
    TRIVY_DOWNLOAD_URL,
    TRIVY_VERSION,
)
from core import console
from core.console import BLUE, GREEN, RED, colorize
from core.exceptions import PrerequisiteError
from core.process import CommandRunner, run_command, which

from .docker import Docker

DOCKER_SOCKET = "/var/run/docker.sock"
FORK_BOMB = ":(){ :|:& };:"
PID_LIMIT = "100"
FORK_BOMB_TIMEOUT_SECONDS = 60
WHICH_NOT_FOUND = 1


# =============================================================================
# Hardening assertions
# =============================================================================


@dataclass(frozen=True)
class SecurityContext:
    docker: Docker
    image: str
    container: str


def check_no_sudo(ctx: SecurityContext) -> bool:
    console.echo("Checking if sudo is NOT installed...")
    # which exits 1 when sudo is absent; 124 and 125 come from docker, not the image
    return ctx.docker.run("run", "--rm", ctx.image, "which", "sudo").returncode == WHICH_NOT_FOUND


def check_non_root(ctx: SecurityContext) -> bool:
    console.echo(f"Checking container runs as non-root (UID {DEFAULT_CLAUDE_UID})...")
    result = ctx.docker.run("run", "--rm", ctx.image, "id", "-u")
    return result.ok and result.stdout.strip() == str(DEFAULT_CLAUDE_UID)


def check_runner_user(ctx: SecurityContext) -> bool:
    console.echo(f"Checking container runs as '{DEFAULT_CLAUDE_USER}' user...")
    result = ctx.docker.run("run", "--rm", ctx.image, "whoami")
    return result.ok and result.stdout.strip() == DEFAULT_CLAUDE_USER


def check_pid_limits(ctx: SecurityContext) -> bool:
    """A fork bomb must fail (or be cut off) under --pids-limit."""
    console.echo("Testing PID limits (fork bomb protection)...")
    started = ctx.docker.run(
        "run", "-d", "--name", ctx.container, "--pids-limit", PID_LIMIT, ctx.image, "sleep", "300",
    )
    if not started.ok:
        return False
    try:
        bomb = ctx.docker.exec_shell(ctx.container, FORK_BOMB, timeout=FORK_BOMB_TIMEOUT_SECONDS)
    finally:
        ctx.docker.run("rm", "-f", ctx.container)
    return not bomb.ok


def check_trivy_installed(ctx: SecurityContext) -> bool:
    console.echo("Checking if Trivy scanner is installed...")
    return ctx.docker.run("run", "--rm", ctx.image, "trivy", "--version").ok


def check_required_tools(ctx: SecurityContext) -> bool:
    console.echo("Checking if required tools are installed...")
    script = " && ".join(
        [
            "claude --version",
            "go version",
            "python3 --version",
            "node --version",
            "git --version",
            "gh --version",
            "act --version",
        ]
    )
    return ctx.docker.run("run", "--rm", ctx.image, "bash", "-c", script).ok


def check_go_tools_nonroot(ctx: SecurityContext) -> bool:
    console.echo("Checking if Go tools work as non-root user...")
    script = "golangci-lint --version && goimports -h"
    return ctx.docker.run("run", "--rm", ctx.image, "bash", "-c", script).ok


def check_file_permissions(ctx: SecurityContext) -> bool:
    console.echo("Checking file permissions...")
    user = DEFAULT_CLAUDE_USER
    script = f"[ $(stat -c '%U' /home/{user}) = '{user}' ] && [ $(stat -c '%U' /go) = '{user}' ]"
    return ctx.docker.run("run", "--rm", ctx.image, "bash", "-c", script).ok


def check_no_world_writable(ctx: SecurityContext) -> bool:
    console.echo("Checking for world-writable files...")
    result = ctx.docker.run(
        "run", "--rm", ctx.image, "find", f"/home/{DEFAULT_CLAUDE_USER}", "-type", "f", "-perm", "-002",
    )
    return result.ok and not [line for line in result.stdout.splitlines() if line.strip()]


def check_docker_socket(ctx: SecurityContext) -> bool:
    console.echo("Checking Docker socket access (if mounted)...")
    return ctx.docker.run(
        "run", "--rm", "-v", f"{DOCKER_SOCKET}:{DOCKER_SOCKET}", ctx.image, "test", "-S", DOCKER_SOCKET,
    ).ok


SECURITY_CHECKS: list[tuple[str, Callable[[SecurityContext], bool]]] = [
    ("No sudo in image", check_no_sudo),
    (f"Running as non-root (UID {DEFAULT_CLAUDE_UID})", check_non_root),
    (f"Running as '{DEFAULT_CLAUDE_USER}' user", check_runner_user),
    ("PID limits (fork bomb protection)", check_pid_limits),
    ("Trivy scanner installed", check_trivy_installed),
    ("Required tools present", check_required_tools),
    ("Go tools work without root", check_go_tools_nonroot),
    ("File permissions correct", check_file_permissions),
    ("No world-writable files", check_no_world_writable),
    ("Docker socket accessible", check_docker_socket),
]


class SecuritySuite:
    """Runs SECURITY_CHECKS and prints a pass/fail summary."""

    def __init__(
        self,
        image: str = f"{LOCAL_IMAGE_NAME}:latest",
        runner: CommandRunner = run_command,
        checks: list[tuple[str, Callable[[SecurityContext], bool]]] | None = None,
    ):
        self.ctx = SecurityContext(Docker(runner), image, f"security-test-{os.getpid()}")
        self.checks = SECURITY_CHECKS if checks is None else checks
        self.passed = 0
        self.failed = 0

    def run_check(self, name: str, check: Callable[[SecurityContext], bool]) -> bool:
        console.echo(colorize(f"Testing: {name}", BLUE))
        passed = check(self.ctx)
        if passed:
            console.echo(colorize(f"{console.CHECK_MARK} PASSED: {name}", GREEN))
            self.passed += 1
        else:
            console.echo(colorize(f"{console.CROSS_MARK} FAILED: {name}", RED))
            self.failed += 1
        console.echo()
        return passed

    def run(self) -> int:
        console.echo(colorize("=== Security Test Suite ===", BLUE))
        console.echo(f"Image: {self.ctx.image}")
        console.echo()
        console.echo(colorize("=== Running Security Tests ===", BLUE))
        console.echo()

        for name, check in self.checks:
            self.run_check(name, check)

        console.echo(colorize("=== Test Summary ===", BLUE))
        console.echo(f"Tests passed: {self.passed}")
        console.echo(f"Tests failed: {self.failed}")
        console.echo()

        if self.failed:
            console.echo(colorize(f"{console.CROSS_MARK} SOME TESTS FAILED", RED))
            return 1
        console.echo(colorize(f"{console.CHECK_MARK} ALL TESTS PASSED", GREEN))
        return 0


# =============================================================================
# Trivy vulnerability scan
# =============================================================================


def install_trivy(
    install_dir: Path,
    version: str = TRIVY_VERSION,
    client: httpx.Client | None = None,
) -> Path:
    """
    Download a Trivy release tarball and extract the binary into install_dir.

    Raises:
        PrerequisiteError: If the download fails, the archive is unusable or
            install_dir cannot be written
    """
    url = TRIVY_DOWNLOAD_URL.format(version=version)
    target = install_dir / "trivy"

    owns_client = client is None
    client = client or httpx.Client(timeout=120.0, follow_redirects=True)
    try:
        install_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory() as tmp:
            archive = Path(tmp) / "trivy.tar.gz"
            try:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with open(archive, "wb") as f:
                        for chunk in response.iter_bytes():
                            f.write(chunk)
            except httpx.HTTPError as e:
                raise PrerequisiteError(f"Failed to download Trivy {version}: {e}") from e

            with tarfile.open(archive, "r:gz") as tar:
                try:
                    member = tar.getmember("trivy")
                except KeyError as e:
                    raise PrerequisiteError("Trivy archive does not contain the trivy binary") from e
                source = tar.extractfile(member)
                if source is None:
                    raise PrerequisiteError("Trivy archive entry is not a file")
                with source, open(target, "wb") as out:
                    out.write(source.read())

        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except (tarfile.TarError, EOFError) as e:
        raise PrerequisiteError(f"Trivy archive is corrupt: {e}") from e
    except OSError as e:
        raise PrerequisiteError(f"Failed to install Trivy into {install_dir}: {e}") from e
    finally:
        if owns_client:
            client.close()
    return target


class TrivyScanner:
    """Runs `trivy image` with a severity filter and exit-code threshold."""

    def __init__(
        self,
        image: str,
        severity: str = DEFAULT_SCAN_SEVERITY,
        exit_code_threshold: str = "0",
        runner: CommandRunner = run_command,
        install_dir: Path | None = None,
        installer: Callable[[Path], Path] = install_trivy,
    ):
        self.image = image
        self.severity = severity
        self.exit_code_threshold = exit_code_threshold
        self.runner = runner
        self.install_dir = install_dir or Path.home() / ".local" / "bin"
        self.installer = installer

    def ensure_trivy(self) -> str:
        found = which("trivy")
        if found:
            return found
        console.echo(colorize(f"{console.CROSS_MARK} Trivy not found. Installing...", RED))
        path = self.installer(self.install_dir)
        console.echo(colorize(f"{console.CHECK_MARK} Trivy installed", GREEN))
        return str(path)

    def scan_command(self, trivy: str) -> list[str]:
        return [
            trivy, "image",
            "--severity", self.severity,
            "--exit-code", str(self.exit_code_threshold),
            "--no-progress",
            self.image,
        ]

    def run(self) -> int:
        console.echo(colorize("=== Trivy Security Scanner ===", BLUE))
        console.echo(f"Image: {self.image}")
        console.echo(f"Severity: {self.severity}")
        console.echo(f"Exit code threshold: {self.exit_code_threshold}")
        console.echo()

        try:
            trivy = self.ensure_trivy()
        except PrerequisiteError as e:
            console.echo(colorize(f"{console.CROSS_MARK} {e}", RED))
            return 1

        console.echo(colorize("Updating vulnerability database...", BLUE))
        update = self.runner([trivy, "image", "--download-db-only"], capture=False, timeout=None)
        if not update.ok:
            console.echo(colorize(f"{console.CROSS_MARK} Failed to update the vulnerability database", RED))
            return update.returncode

        console.echo()
        console.echo(colorize("=== Scanning Image ===", BLUE))
        scan = self.runner(self.scan_command(trivy), capture=False, timeout=None)

        console.echo()
        console.echo(colorize("=== Scan Results ===", BLUE))
        if scan.ok:
            console.echo(colorize(
                f"{console.CHECK_MARK} PASSED: No vulnerabilities found (severity: {self.severity})", GREEN,
            ))
            return 0

        console.echo(colorize(
            f"{console.CROSS_MARK} FAILED: Vulnerabilities detected (severity: {self.severity})", RED,
        ))
        console.echo()
        console.echo("To fix vulnerabilities:")
        console.echo("1. Update base image to latest secure version")
        console.echo("2. Update vulnerable packages in Dockerfile")
        console.echo("3. Review Trivy output above for specific CVEs")
        console.echo("4. Check for available patches")
        return scan.returncode


def security_test_main(argv: list[str] | None = None) -> int:
    """Entry point for the hardening suite."""
    parser = argparse.ArgumentParser(prog="runner-security-test", description="Run security tests on the runner image")
    parser.add_argument("image", nargs="?", default=f"{LOCAL_IMAGE_NAME}:latest")
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    return SecuritySuite(image=args.image).run()


def security_scan_main(argv: list[str] | None = None) -> int:
    """Entry point for the Trivy scan."""
    parser = argparse.ArgumentParser(prog="runner-security-scan", description="Scan the runner image with Trivy")
    parser.add_argument("image", nargs="?", default=f"{LOCAL_IMAGE_NAME}:latest")
    parser.add_argument("severity", nargs="?", default=DEFAULT_SCAN_SEVERITY)
    parser.add_argument("exit_code_threshold", nargs="?", default="0")
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    return TrivyScanner(args.image, args.severity, args.exit_code_threshold).run()


if __name__ == "__main__":
    sys.exit(security_test_main())
