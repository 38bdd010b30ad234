"""
Host-side manager for the runner container.

Usage: runner-ctl <command> [args]

Each command maps to one or two docker / docker compose invocations.
"""

import argparse
import os
import sys
from collections.abc import Callable
from pathlib import Path

from config.defaults import (
    BUILD_SCRIPT,
    COMPOSE_FILE,
    LOCAL_IMAGE_NAME,
    RUNNER_DOCKERFILE,
    SECRETS_FILE,
    SERVICE_CONTAINER,
    WORKFLOWS_RELPATH,
)
from core import console
from core.console import BLUE, GREEN, NC, YELLOW
from core.exceptions import PrerequisiteError
from core.process import CommandRunner, run_command
from runner.logger import configure_logging, get_logger

from .docker import Compose, Docker, compose_command, require_docker

logger = get_logger(__name__)

USAGE = f"""{BLUE}GitHub Actions Runner Container Manager{NC}

{GREEN}Usage:{NC}
    runner-ctl <command> [options]

{GREEN}Commands:{NC}
    {YELLOW}start{NC}           Start the runner container
    {YELLOW}stop{NC}            Stop the runner container
    {YELLOW}restart{NC}         Restart the runner container
    {YELLOW}shell{NC}           Open shell in runner container
    {YELLOW}logs{NC}            View container logs (-f to follow)
    {YELLOW}build{NC}           Build the runner image
    {YELLOW}test{NC}            Test workflows with act
    {YELLOW}status{NC}          Show container status
    {YELLOW}clean{NC}           Stop and remove container
    {YELLOW}purge{NC}           Remove container and volumes
    {YELLOW}rebuild{NC}         Clean, build, and start
    {YELLOW}validate{NC}        Validate workflows

{GREEN}Examples:{NC}
    runner-ctl start              # Start the runner
    runner-ctl shell              # Access container shell
    runner-ctl test ci.yml        # Test CI workflow
    runner-ctl logs               # View logs
    runner-ctl rebuild            # Full rebuild

{GREEN}Environment:{NC}
    Set these in .secrets file or export before running:
    - GITHUB_TOKEN
    - ANTHROPIC_API_KEY
    - SKILL_SEEKERS_PATH
"""

HELP_COMMANDS = ("help", "--help", "-h")


class RunnerCtl:
    """Implements each runner-ctl subcommand against docker compose."""

    def __init__(
        self,
        project_root: Path | None = None,
        runner: CommandRunner = run_command,
        confirm: Callable[[str], bool] = console.confirm,
    ):
        self.project_root = project_root or Path.cwd()
        self.runner = runner
        self.confirm = confirm
        self.compose = Compose(self.project_root / COMPOSE_FILE, SERVICE_CONTAINER, runner)
        self.docker = Docker(runner)
        self.commands: dict[str, Callable[[list[str]], int]] = {
            "start": self.cmd_start,
            "stop": self.cmd_stop,
            "restart": self.cmd_restart,
            "shell": self.cmd_shell,
            "bash": self.cmd_shell,
            "sh": self.cmd_shell,
            "logs": self.cmd_logs,
            "build": self.cmd_build,
            "test": self.cmd_test,
            "status": self.cmd_status,
            "clean": self.cmd_clean,
            "purge": self.cmd_purge,
            "rebuild": self.cmd_rebuild,
            "validate": self.cmd_validate,
        }

    def check_prerequisites(self) -> None:
        """
        Raises:
            PrerequisiteError: If docker, compose or the compose file is missing
        """
        require_docker()
        self.compose.prefix = compose_command(self.runner)
        if not self.compose.compose_file.is_file():
            raise PrerequisiteError(f"{COMPOSE_FILE} not found")

    def check_secrets(self) -> bool:
        if not (self.project_root / SECRETS_FILE).is_file():
            logger.warning("No .secrets file found")
            logger.warning("Create .secrets file with required tokens")
            logger.warning("See .secrets.example for template")
            return False
        return True

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def cmd_start(self, args: list[str]) -> int:
        logger.info("Starting runner container...")
        if not self.check_secrets():
            logger.warning("Container will start without secrets")
        result = self.compose.run("up", "-d")
        if result.ok:
            logger.info("Runner started successfully")
            logger.info("Access with: runner-ctl shell")
        return result.returncode

    def cmd_stop(self, args: list[str]) -> int:
        logger.info("Stopping runner container...")
        result = self.compose.run("stop")
        if result.ok:
            logger.info("Runner stopped")
        return result.returncode

    def cmd_restart(self, args: list[str]) -> int:
        logger.info("Restarting runner container...")
        result = self.compose.run("restart")
        if result.ok:
            logger.info("Runner restarted")
        return result.returncode

    def cmd_shell(self, args: list[str]) -> int:
        logger.info("Opening shell in runner container...")
        return self.compose.exec("bash").returncode

    def cmd_logs(self, args: list[str]) -> int:
        if args and args[0] in ("-f", "--follow"):
            return self.compose.run("logs", "-f", self.compose.service).returncode
        return self.compose.run("logs", self.compose.service).returncode

    def cmd_build(self, args: list[str]) -> int:
        logger.info("Building runner image...")
        script = self.project_root / BUILD_SCRIPT
        if script.is_file() and os.access(script, os.X_OK):
            result = self.runner([f"./{BUILD_SCRIPT}"], capture=False, cwd=str(self.project_root), timeout=None)
        else:
            result = self.docker.run(
                "build", "-f", RUNNER_DOCKERFILE, "-t", f"{LOCAL_IMAGE_NAME}:latest", ".",
                capture=False, cwd=str(self.project_root), timeout=None,
            )
        if result.ok:
            logger.info("Build complete")
        return result.returncode

    def cmd_test(self, args: list[str]) -> int:
        if not args:
            logger.info("Listing available workflows...")
            return self.compose.exec("act", "-l").returncode

        workflow = args[0]
        logger.info("Testing workflow: %s", workflow)
        return self.compose.exec("act", "-W", f"{WORKFLOWS_RELPATH}/{workflow}", "-n").returncode

    def cmd_status(self, args: list[str]) -> int:
        logger.info("Container status:")
        result = self.compose.run("ps")
        console.echo()
        logger.info("Image information:")
        images = self.docker.run("images", f"{LOCAL_IMAGE_NAME}:latest")
        for line in images.stdout.splitlines()[:2]:
            console.echo(line)
        return result.returncode or images.returncode

    def cmd_clean(self, args: list[str]) -> int:
        logger.info("Cleaning up containers...")
        result = self.compose.run("down")
        if result.ok:
            logger.info("Cleanup complete")
        return result.returncode

    def cmd_purge(self, args: list[str]) -> int:
        logger.warning("This will remove containers and volumes")
        if not self.confirm("Are you sure?"):
            logger.info("Cancelled")
            return 0
        logger.info("Purging containers and volumes...")
        result = self.compose.run("down", "-v")
        if result.ok:
            logger.info("Purge complete")
        return result.returncode

    def cmd_rebuild(self, args: list[str]) -> int:
        logger.info("Full rebuild process...")
        for step in (self.cmd_clean, self.cmd_build, self.cmd_start):
            code = step([])
            if code != 0:
                return code
        logger.info("Rebuild complete")
        return 0

    def cmd_validate(self, args: list[str]) -> int:
        logger.info("Validating workflows...")
        return self.compose.exec_shell(f"actionlint {WORKFLOWS_RELPATH}/*.yml").returncode

    def dispatch(self, command: str, args: list[str]) -> int:
        if command not in self.commands:
            logger.error("Unknown command: %s", command)
            console.echo()
            console.echo(USAGE)
            return 1

        try:
            self.check_prerequisites()
        except PrerequisiteError as e:
            logger.error(str(e))
            return 1

        return self.commands[command](args)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="runner-ctl", add_help=False)
    parser.add_argument("command", nargs="?")
    parser.add_argument("args", nargs=argparse.REMAINDER)
    return parser


def main(argv: list[str] | None = None, ctl: RunnerCtl | None = None) -> int:
    """Entry point; returns the process exit code."""
    configure_logging(json_logs=False)
    args = list(sys.argv[1:] if argv is None else argv)

    if not args or args[0] in HELP_COMMANDS:
        console.echo(USAGE)
        return 0

    ns = build_parser().parse_args(args)
    return (ctl or RunnerCtl()).dispatch(ns.command, list(ns.args))


if __name__ == "__main__":
    sys.exit(main())
