"""
Container entrypoint for the GitHub Actions runner with the assistant CLI.

Runs once per container start:
- starts the OpenTelemetry collector (optional)
- verifies the bundled toolchains
- prepares the workspace, git identity, MCP configuration and GitHub auth
- runs preflight checks (gofmt, actionlint) and the readiness check
- execs the requested command, or an interactive shell

Environment variables:
- ENABLE_OTEL, OTEL_CONFIG, OTEL_ENDPOINT, METRICS_PORT
- WORKSPACE, CLAUDE_HOME
- USE_JSON_LOGS, LOG_LEVEL, RUN_PREFLIGHT
- GIT_USER_NAME, GIT_USER_EMAIL, SKILL_SEEKERS_PATH
- GITHUB_TOKEN, ANTHROPIC_API_KEY
"""

import getpass
import os
import subprocess
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import httpx
from git import GitConfigParser
from git.config import get_config_path

from config.defaults import (
    AGENTS_RELPATH,
    DEFAULT_OTEL_LOG_PATH,
    HEALTH_COMMAND,
    HEALTH_REPORT_PATH,
    METRICS_PROBE_TIMEOUT_SECONDS,
    OTEL_STARTUP_WAIT_SECONDS,
    SKILL_SEEKER_SERVER,
    SKILLS_RELPATH,
    WORKFLOWS_RELPATH,
)
from config.loader import load_assistant_config, load_config_file, write_json_atomic
from config.mcp_server_config import McpConfig
from config.settings import RunnerSettings
from core import console
from core.exceptions import CommandExecError, ConfigError, RunnerToolsError, ToolNotFoundError
from core.process import EXIT_NOT_FOUND, CommandRunner, run_command

from .health import HealthReport, check_readiness, render_report
from .logger import configure_logging, get_logger
from .system import SystemProbe

DEFAULT_SHELL = ["/bin/bash"]

# (binary, label, version argv, field index or None for first line)
REQUIRED_TOOLS: list[tuple[str, str, list[str], int | None]] = [
    ("claude", "Claude Code", ["claude", "--version"], None),
    ("go", "Go", ["go", "version"], 2),
    ("python3", "Python", ["python3", "--version"], 1),
]
OPTIONAL_TOOLS: list[tuple[str, str, list[str], int | None]] = [
    ("node", "Node.js", ["node", "--version"], None),
    ("act", "act", ["act", "--version"], None),
    ("actionlint", "actionlint", ["actionlint", "--version"], None),
    ("otelcol", "OpenTelemetry Collector", ["otelcol", "--version"], None),
]


class Entrypoint:
    """Container start-up sequence. Collaborators are injectable for tests."""

    def __init__(
        self,
        settings: RunnerSettings,
        probe: SystemProbe | None = None,
        runner: CommandRunner = run_command,
        spawn: Callable[..., Any] = subprocess.Popen,
        http_get: Callable[..., Any] = httpx.get,
        sleep: Callable[[float], None] = time.sleep,
        execvp: Callable[[str, list[str]], Any] = os.execvp,
        gitconfig_path: Path | None = None,
        health_report_path: Path = Path(HEALTH_REPORT_PATH),
        otel_log_path: Path = Path(DEFAULT_OTEL_LOG_PATH),
    ):
        self.settings = settings
        self.probe = probe or SystemProbe()
        self.runner = runner
        self.spawn = spawn
        self.http_get = http_get
        self.sleep = sleep
        self.execvp = execvp
        self.gitconfig_path = gitconfig_path or Path(get_config_path("global"))
        self.health_report_path = health_report_path
        self.otel_log_path = otel_log_path
        self.logger = get_logger(__name__, component="entrypoint")
        self.versions: dict[str, str] = {}
        self.otel_process: Any = None

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def start_otel_collector(self) -> bool:
        """Start the collector in the background; never blocks start-up."""
        if not self.settings.enable_otel:
            self.logger.info("OpenTelemetry Collector disabled (ENABLE_OTEL=false)")
            return False

        self.logger.info("Starting OpenTelemetry Collector...")
        config_path = self.settings.otel_config_path
        if not config_path.is_file():
            self.logger.error("OTEL config not found at %s", config_path)
            self.logger.warning("OpenTelemetry Collector will not be started")
            return False

        try:
            with open(self.otel_log_path, "ab") as log_file:
                self.otel_process = self.spawn(
                    ["otelcol", f"--config={config_path}"],
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
        except OSError as e:
            self.logger.warning("OpenTelemetry Collector failed to start: %s", e)
            return False

        self.sleep(OTEL_STARTUP_WAIT_SECONDS)

        if self.otel_process.poll() is not None:
            self.logger.warning(
                "OpenTelemetry Collector failed to start (check %s)", self.otel_log_path
            )
            return False

        self.logger.info("OpenTelemetry Collector started (PID: %s)", self.otel_process.pid)
        self.logger.info("Prometheus metrics available at: %s", self.settings.metrics_url)
        self.probe_metrics_endpoint()

        if self.settings.otel_endpoint:
            self.logger.info("OTLP exporter configured: %s", self.settings.otel_endpoint)
        return True

    def probe_metrics_endpoint(self) -> bool:
        url = self.settings.metrics_url
        try:
            response = self.http_get(url, timeout=METRICS_PROBE_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            self.logger.warning("Metrics endpoint not answering yet: %s", e)
            return False
        if response.status_code != 200:
            self.logger.warning("Metrics endpoint returned HTTP %d", response.status_code)
            return False
        self.logger.debug("Metrics endpoint is serving")
        return True

    # -------------------------------------------------------------------------
    # Tools
    # -------------------------------------------------------------------------

    def _version(self, argv: list[str], index: int | None) -> str:
        result = self.runner(argv)
        return result.first_line() if index is None else result.field(index)

    def verify_tools(self) -> dict[str, str]:
        """
        Log the version of each bundled tool.

        Raises:
            ToolNotFoundError: If claude, go or python3 is missing
        """
        self.logger.info("Verifying tool installations...")

        for binary, label, argv, index in REQUIRED_TOOLS:
            if not self.probe.which(binary):
                raise ToolNotFoundError(binary, label)
            self.versions[binary] = self._version(argv, index)
            self.logger.info("%s: %s", label, self.versions[binary])

        for binary, label, argv, index in OPTIONAL_TOOLS:
            if not self.probe.which(binary):
                self.logger.warning("%s not found!", label)
                continue
            self.versions[binary] = self._version(argv, index)
            self.logger.info("%s: %s", label, self.versions[binary])

        return self.versions

    # -------------------------------------------------------------------------
    # Workspace and identity
    # -------------------------------------------------------------------------

    def prepare_workspace(self) -> Path:
        workspace = self.settings.workspace
        self.logger.info("Workspace: %s", workspace)

        if not workspace.is_dir():
            self.logger.warning("Workspace directory not found, creating...")
            workspace.mkdir(parents=True, exist_ok=True)

        os.chdir(workspace)
        self.logger.debug("Changed directory to workspace")
        return workspace

    def configure_git(self) -> None:
        """Fill in the global git identity only where it is empty."""
        with GitConfigParser(str(self.gitconfig_path), read_only=False) as cfg:
            if not str(cfg.get_value("user", "name", "")).strip():
                cfg.set_value("user", "name", self.settings.git_user_name)
                self.logger.debug("Set git user.name")
            if not str(cfg.get_value("user", "email", "")).strip():
                cfg.set_value("user", "email", self.settings.git_user_email)
                self.logger.debug("Set git user.email")

    def configure_mcp(self) -> bool:
        """
        Point the skill-seeker MCP server at SKILL_SEEKERS_PATH when it is set.

        Returns:
            True if the configuration file was rewritten
        """
        path = self.settings.mcp_config_path
        if not path.is_file():
            self.logger.warning("MCP configuration not found at %s", path)
            return False

        self.logger.info("MCP configuration found")
        seekers_path = self.settings.skill_seekers_path
        if not seekers_path:
            return False

        self.logger.debug("Updating Skill_Seekers path to: %s", seekers_path)
        try:
            data = load_config_file(path) or {}
            McpConfig.model_validate(data)
        except (ConfigError, ValueError) as e:
            self.logger.warning("Cannot update MCP configuration: %s", e)
            return False

        server = data.get("mcpServers", {}).get(SKILL_SEEKER_SERVER)
        if server is None:
            self.logger.warning("MCP server '%s' is not configured", SKILL_SEEKER_SERVER)
            return False

        args = list(server.get("args") or [])
        entry = f"{seekers_path.rstrip('/')}/mcp/server.py"
        if args:
            args[0] = entry
        else:
            args.append(entry)
        server["args"] = args
        server["cwd"] = seekers_path

        write_json_atomic(path, data)
        self.logger.info("Updated MCP configuration")
        return True

    def download_go_modules(self) -> None:
        if not (self.settings.workspace / "go.mod").is_file():
            return
        self.logger.info("Found go.mod, ensuring dependencies are downloaded...")
        result = self.runner(["go", "mod", "download"], cwd=str(self.settings.workspace), timeout=None)
        if result.ok:
            self.logger.info("Go dependencies downloaded")
        else:
            self.logger.warning("go mod download failed: %s", result.first_line())

    def configure_credentials(self) -> None:
        if self.settings.github_token:
            self.logger.info("GitHub token provided, configuring gh CLI...")
            result = self.runner(
                ["gh", "auth", "login", "--with-token"],
                input=self.settings.github_token,
            )
            if not result.ok:
                self.logger.warning("Failed to configure gh CLI")

        if self.settings.anthropic_api_key:
            self.logger.info("Anthropic API key provided")
            os.environ["ANTHROPIC_API_KEY"] = self.settings.anthropic_api_key

    # -------------------------------------------------------------------------
    # Inventory and preflight
    # -------------------------------------------------------------------------

    def report_inventory(self) -> dict[str, int]:
        """Count agent specs, skill modules and workflows; note project docs."""
        counts: dict[str, int] = {}
        home = self.settings.claude_home
        workspace = self.settings.workspace

        agents_dir = home / AGENTS_RELPATH
        if agents_dir.is_dir():
            counts["agents"] = sum(
                1 for p in agents_dir.rglob("*") if p.is_file() and p.suffix in (".md", ".yml")
            )
            self.logger.info("Loaded %d agent specifications", counts["agents"])

        skills_dir = home / SKILLS_RELPATH
        if skills_dir.is_dir():
            counts["skills"] = sum(1 for p in skills_dir.iterdir() if p.is_dir())
            self.logger.info("Loaded %d skill modules", counts["skills"])

        for doc in ("CLAUDE.md", "PRD.md"):
            if (workspace / doc).is_file():
                self.logger.info("Project %s found", doc)

        workflows_dir = workspace / WORKFLOWS_RELPATH
        if workflows_dir.is_dir():
            counts["workflows"] = len(self._workflow_files())
            self.logger.info("Found %d workflow files", counts["workflows"])

        try:
            assistant = load_assistant_config(self.settings.assistant_config_path)
        except ConfigError as e:
            self.logger.warning("Ignoring assistant config: %s", e)
            assistant = None
        if assistant is not None:
            checkpoint = assistant.checkpoint
            self.logger.info(
                "Checkpoints: auto=%s threshold=%s dir=%s",
                checkpoint.auto, checkpoint.threshold, checkpoint.checkpoint_dir or "default",
            )

        return counts

    def _workflow_files(self) -> list[Path]:
        workflows_dir = self.settings.workspace / WORKFLOWS_RELPATH
        return sorted(p for p in workflows_dir.rglob("*.yml") if p.is_file())

    def run_preflight(self) -> None:
        """Best-effort formatting and lint checks; findings only warn."""
        if not self.settings.run_preflight:
            return

        self.logger.info("Running pre-flight checks...")
        workspace = self.settings.workspace

        if (workspace / "go.mod").is_file():
            self.logger.debug("Checking Go code...")
            result = self.runner(["gofmt", "-l", "."], cwd=str(workspace))
            if result.returncode == EXIT_NOT_FOUND:
                self.logger.debug("gofmt not available, skipping")
            elif result.ok and not result.stdout.strip():
                self.logger.info("Go code is properly formatted")
            else:
                self.logger.warning("Some Go files need formatting")

        workflows = self._workflow_files() if (workspace / WORKFLOWS_RELPATH).is_dir() else []
        if workflows and self.probe.which("actionlint"):
            self.logger.debug("Validating workflows...")
            result = self.runner(["actionlint", *[str(p) for p in workflows]], cwd=str(workspace))
            if result.ok:
                self.logger.info("All workflows are valid")
            else:
                self.logger.warning("Some workflows have validation warnings (check with: actionlint)")

    def run_health_check(self) -> HealthReport:
        self.logger.info("Running readiness health check...")
        report = check_readiness(self.settings, self.probe)
        document = render_report(report)

        try:
            self.health_report_path.write_text(document, encoding="utf-8")
        except OSError as e:
            self.logger.warning("Could not write %s: %s", self.health_report_path, e)

        if report.healthy:
            self.logger.info("Health check passed")
        else:
            self.logger.warning("Health check reported issues")

        if not self.settings.use_json_logs:
            console.echo(document.rstrip())
        return report

    # -------------------------------------------------------------------------
    # Output and hand-off
    # -------------------------------------------------------------------------

    def print_summary(self) -> None:
        otel_state = "enabled" if self.settings.enable_otel else "disabled"
        console.rule()
        console.echo(console.colorize("Container Information:", console.GREEN))
        console.echo(f"  User: {getpass.getuser()}")
        console.echo(f"  Home: {os.environ.get('HOME', str(Path.home()))}")
        console.echo(f"  Workspace: {self.settings.workspace}")
        console.echo(f"  Go version: {self.versions.get('go', 'n/a')}")
        console.echo(f"  Python version: {self.versions.get('python3', 'n/a')}")
        console.echo(f"  Node version: {self.versions.get('node', 'n/a')}")
        console.echo(f"  Observability: OTEL Collector {otel_state}")
        console.echo(f"  Metrics endpoint: {self.settings.metrics_url}")
        console.echo(f"  Health endpoint: {HEALTH_COMMAND} [live|ready]")
        console.rule()

    def exec_command(self, command: Sequence[str]) -> None:
        """Replace this process with the command, or an interactive shell."""
        argv = list(command) or DEFAULT_SHELL
        if command:
            self.logger.info("Executing command: %s", " ".join(argv))
        else:
            self.logger.info("No command provided, starting interactive shell...")
        sys.stdout.flush()
        sys.stderr.flush()
        try:
            self.execvp(argv[0], argv)
        except OSError as e:
            raise CommandExecError(argv[0], e) from e

    def run(self, command: Sequence[str]) -> None:
        """
        Execute the full start-up sequence, then hand off to the command.

        Raises:
            ToolNotFoundError: If a required tool is missing
            CommandExecError: If the final command cannot be executed
        """
        console.banner("GitHub Actions Runner with Claude Code")

        self.start_otel_collector()
        self.verify_tools()
        self.prepare_workspace()
        self.configure_git()
        self.configure_mcp()
        self.download_go_modules()
        self.configure_credentials()
        self.report_inventory()
        self.run_preflight()
        self.run_health_check()

        self.logger.info("Environment ready!")
        self.print_summary()
        self.exec_command(command)


def main(argv: list[str] | None = None) -> int:
    """Entry point; only returns when start-up fails before the exec."""
    command = list(sys.argv[1:] if argv is None else argv)
    settings = RunnerSettings.from_env()
    configure_logging(level=settings.log_level, json_logs=settings.use_json_logs)
    logger = get_logger(__name__, component="entrypoint")

    try:
        Entrypoint(settings).run(command)
    except CommandExecError as e:
        logger.error(str(e))
        return EXIT_NOT_FOUND
    except RunnerToolsError as e:
        logger.error(str(e))
        return 1
    except OSError as e:
        logger.error("Start-up failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
