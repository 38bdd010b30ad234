"""RunnerSettings model built from the container environment."""

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field

from .defaults import (
    DEFAULT_GIT_USER_EMAIL,
    DEFAULT_GIT_USER_NAME,
    DEFAULT_METRICS_PORT,
    DEFAULT_OTEL_CONFIG_PATH,
    DEFAULT_WORKSPACE_DIRNAME,
    ASSISTANT_CONFIG_RELPATH,
    MCP_CONFIG_RELPATH,
)


def env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    """Read a boolean flag; only the literal "true" (any case) is true."""
    value = environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() == "true"


class RunnerSettings(BaseModel):
    """Environment variables consumed at container start. Read once, never mutated."""

    claude_home: Path = Field(description="Home of the runner user")
    workspace: Path = Field(description="Directory jobs run in")
    enable_otel: bool = Field(default=True, description="Start the OTEL collector")
    otel_config_path: Path = Field(
        default=Path(DEFAULT_OTEL_CONFIG_PATH),
        description="Collector configuration file",
    )
    otel_endpoint: str | None = Field(default=None, description="OTLP exporter endpoint")
    metrics_port: int = Field(
        default=DEFAULT_METRICS_PORT, description="Prometheus exporter port"
    )
    use_json_logs: bool = Field(default=True, description="Emit JSON log lines")
    log_level: str = Field(default="INFO", description="Minimum log level")
    run_preflight: bool = Field(default=True, description="Run gofmt/actionlint checks")
    git_user_name: str = Field(default=DEFAULT_GIT_USER_NAME)
    git_user_email: str = Field(default=DEFAULT_GIT_USER_EMAIL)
    skill_seekers_path: str | None = Field(
        default=None, description="Mount point of the Skill_Seekers MCP server"
    )
    github_token: str | None = Field(default=None, repr=False)
    anthropic_api_key: str | None = Field(default=None, repr=False)

    @property
    def mcp_config_path(self) -> Path:
        return self.claude_home / MCP_CONFIG_RELPATH

    @property
    def assistant_config_path(self) -> Path:
        return self.claude_home / ASSISTANT_CONFIG_RELPATH

    @property
    def metrics_url(self) -> str:
        return f"http://localhost:{self.metrics_port}/metrics"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RunnerSettings":
        """Build settings from an environment mapping (defaults to os.environ)."""
        env = os.environ if environ is None else environ

        claude_home = Path(
            env.get("CLAUDE_HOME") or env.get("HOME") or str(Path.home())
        )
        workspace = Path(env.get("WORKSPACE") or claude_home / DEFAULT_WORKSPACE_DIRNAME)

        try:
            metrics_port = int(env.get("METRICS_PORT", DEFAULT_METRICS_PORT))
        except ValueError:
            metrics_port = DEFAULT_METRICS_PORT

        return cls(
            claude_home=claude_home,
            workspace=workspace,
            enable_otel=env_flag(env, "ENABLE_OTEL", True),
            otel_config_path=Path(env.get("OTEL_CONFIG", DEFAULT_OTEL_CONFIG_PATH)),
            otel_endpoint=env.get("OTEL_ENDPOINT") or None,
            metrics_port=metrics_port,
            use_json_logs=env_flag(env, "USE_JSON_LOGS", True),
            log_level=env.get("LOG_LEVEL", "INFO"),
            run_preflight=env_flag(env, "RUN_PREFLIGHT", True),
            git_user_name=env.get("GIT_USER_NAME") or DEFAULT_GIT_USER_NAME,
            git_user_email=env.get("GIT_USER_EMAIL") or DEFAULT_GIT_USER_EMAIL,
            skill_seekers_path=env.get("SKILL_SEEKERS_PATH") or None,
            github_token=env.get("GITHUB_TOKEN") or None,
            anthropic_api_key=env.get("ANTHROPIC_API_KEY") or None,
        )
