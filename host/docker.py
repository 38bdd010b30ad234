"""
Thin wrappers over the docker and docker compose command lines.

All calls go through an injectable CommandRunner so the host tooling can be
exercised without a docker daemon.
"""

from dataclasses import dataclass, field
from pathlib import Path

from core.exceptions import PrerequisiteError
from core.process import CommandResult, CommandRunner, run_command, which


def compose_command(runner: CommandRunner = run_command) -> list[str]:
    """
    argv prefix for Compose: the `docker compose` plugin when it answers,
    otherwise the standalone `docker-compose` binary.

    Raises:
        PrerequisiteError: If neither is available
    """
    if runner(["docker", "compose", "version"]).ok:
        return ["docker", "compose"]
    if which("docker-compose"):
        return ["docker-compose"]
    raise PrerequisiteError("Docker Compose not found")


def require_docker() -> None:
    if not which("docker"):
        raise PrerequisiteError("Docker not found")


@dataclass
class Docker:
    """Plain docker invocations."""

    runner: CommandRunner = run_command

    def run(self, *args: str, capture: bool = True, **kwargs) -> CommandResult:
        return self.runner(["docker", *args], capture=capture, **kwargs)

    def image_exists(self, image: str) -> bool:
        return self.run("image", "inspect", image).ok

    def exec_shell(self, container: str, command: str, timeout: float | None = None) -> CommandResult:
        """Run a bash snippet inside a running container."""
        return self.run("exec", container, "bash", "-c", command, timeout=timeout)

    def remove_container(self, name: str) -> None:
        self.run("stop", name)
        self.run("rm", name)


@dataclass
class Compose:
    """docker compose bound to one compose file and service."""

    compose_file: Path
    service: str
    runner: CommandRunner = run_command
    prefix: list[str] = field(default_factory=lambda: ["docker", "compose"])

    def command(self, *args: str) -> list[str]:
        return [*self.prefix, "-f", str(self.compose_file), *args]

    def run(self, *args: str, capture: bool = False, **kwargs) -> CommandResult:
        # Interactive subcommands stream straight to the terminal
        return self.runner(self.command(*args), capture=capture, timeout=None, **kwargs)

    def exec(self, *args: str, capture: bool = False) -> CommandResult:
        return self.run("exec", self.service, *args, capture=capture)

    def exec_shell(self, script: str) -> CommandResult:
        """Run a bash snippet in the service so globs expand in the container."""
        return self.exec("bash", "-c", script)
