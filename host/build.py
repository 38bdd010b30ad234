"""
Build the runner image.

Usage: runner-build [tag] [build-args]

IMAGE_NAME overrides the repository name (default axyzlabs/runner).
"""

import argparse
import os
import shlex
import stat
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from config.defaults import (
    AGENTS_RELPATH,
    BASE_IMAGE,
    DEFAULT_DOCKERFILE,
    DEFAULT_IMAGE_NAME,
    DEFAULT_IMAGE_TAG,
)
from core import console
from core.console import BLUE, GREEN, RED, YELLOW, colorize
from core.exceptions import PrerequisiteError
from core.process import CommandRunner, run_command

from .docker import Docker, require_docker

TOTAL_STEPS = 5
ENTRYPOINT_SCRIPT = "entrypoint.sh"


class ImageBuilder:
    """Five-step image build with prerequisite and agent checks."""

    def __init__(
        self,
        image_name: str,
        tag: str = DEFAULT_IMAGE_TAG,
        build_args: Sequence[str] = (),
        project_root: Path | None = None,
        home: Path | None = None,
        runner: CommandRunner = run_command,
        confirm: Callable[[str], bool] = console.confirm,
    ):
        self.image_name = image_name
        self.tag = tag
        self.build_args = list(build_args)
        self.project_root = project_root or Path.cwd()
        self.home = home or Path.home()
        self.runner = runner
        self.confirm = confirm
        self.docker = Docker(runner)

    @property
    def image(self) -> str:
        return f"{self.image_name}:{self.tag}"

    def build_command(self) -> list[str]:
        argv = ["docker", "build", "-f", DEFAULT_DOCKERFILE, "-t", self.image]
        argv.extend(self.build_args)
        argv.extend(["--progress=plain", "."])
        return argv

    def check_prerequisites(self) -> None:
        console.step(1, TOTAL_STEPS, "Checking prerequisites...")
        require_docker()
        if not (self.project_root / DEFAULT_DOCKERFILE).is_file():
            raise PrerequisiteError(f"{DEFAULT_DOCKERFILE} not found")
        console.ok("Prerequisites OK")

    def check_agents(self) -> bool:
        """Returns False when the user declines to continue without agents."""
        console.step(2, TOTAL_STEPS, "Verifying user-level agents...")
        agents_dir = self.home / AGENTS_RELPATH
        if not agents_dir.is_dir():
            console.echo(colorize(f"Warning: User-level agents not found at {agents_dir}", YELLOW))
            console.echo(colorize("The container will work but without user-level agents", YELLOW))
            return self.confirm("Continue anyway?")

        count = sum(1 for p in agents_dir.rglob("*") if p.is_file())
        console.ok(f"Found {count} user-level agent files")
        return True

    def prepare_entrypoint(self) -> None:
        console.step(3, TOTAL_STEPS, "Verifying entrypoint script...")
        script = self.project_root / ENTRYPOINT_SCRIPT
        if not script.is_file():
            raise PrerequisiteError(f"{ENTRYPOINT_SCRIPT} not found")
        mode = script.stat().st_mode
        script.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        console.ok(f"{ENTRYPOINT_SCRIPT} found and made executable")

    def pull_base_image(self) -> None:
        console.step(4, TOTAL_STEPS, "Pulling base image...")
        result = self.docker.run("pull", BASE_IMAGE, capture=False, timeout=None)
        if not result.ok:
            console.echo(colorize("Warning: Failed to pull latest base image, using cached version", YELLOW))

    def build_image(self) -> bool:
        console.step(5, TOTAL_STEPS, "Building Docker image...")
        console.echo(colorize(f"Image: {self.image}", BLUE))

        argv = self.build_command()
        console.echo(colorize(f"Command: {shlex.join(argv)}", BLUE))

        env = dict(os.environ, DOCKER_BUILDKIT="1")
        result = self.runner(argv, capture=False, cwd=str(self.project_root), env=env, timeout=None)
        return result.ok

    def print_success(self) -> None:
        console.banner(f"{console.CHECK_MARK} Build successful!", GREEN)
        console.echo(colorize(f"Image: {self.image}", BLUE))

        images = self.docker.run("images", self.image)
        for line in images.stdout.splitlines():
            if not line.startswith("REPOSITORY"):
                console.echo(line)

        console.echo(f"\n{colorize('Next steps:', BLUE)}")
        console.echo("  1. Test the image:")
        console.echo(f"     {colorize(f'docker run -it --rm {self.image}', GREEN)}")
        console.echo("\n  2. Run with docker-compose:")
        console.echo(f"     {colorize('docker compose up -d', GREEN)}")
        console.echo("\n  3. Access the container:")
        console.echo(f"     {colorize('docker compose exec runner bash', GREEN)}")

    def run(self) -> int:
        console.banner("Building GitHub Actions Runner Image")
        try:
            self.check_prerequisites()
            if not self.check_agents():
                return 1
            self.prepare_entrypoint()
        except PrerequisiteError as e:
            console.echo(colorize(f"Error: {e}", RED))
            return 1

        self.pull_base_image()

        if not self.build_image():
            console.banner(f"{console.CROSS_MARK} Build failed!", RED)
            return 1

        self.print_success()
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="runner-build", description="Build the runner image")
    parser.add_argument("tag", nargs="?", default=DEFAULT_IMAGE_TAG, help="Image tag")
    parser.add_argument("build_args", nargs=argparse.REMAINDER, help="Extra docker build arguments")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point; returns the process exit code."""
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)
    builder = ImageBuilder(
        image_name=os.environ.get("IMAGE_NAME", DEFAULT_IMAGE_NAME),
        tag=args.tag,
        build_args=args.build_args,
    )
    return builder.run()


if __name__ == "__main__":
    sys.exit(main())
