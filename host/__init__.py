"""
Host-side tooling: container management, image build and the assertion
suites run against a built image.
"""

from .docker import Compose, Docker, compose_command, require_docker

__all__ = ["Compose", "Docker", "compose_command", "require_docker"]
