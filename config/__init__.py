"""
Configuration module for the runner tooling.

Exports the configuration models and loader functions used throughout the project.
"""

from .assistant_config import AssistantConfig, CheckpointConfig
from .loader import (
    load_assistant_config,
    load_config_file,
    load_expected_versions,
    load_mcp_config,
    strip_jsonc_comments,
    write_json_atomic,
)
from .mcp_server_config import MCPServerConfig, McpConfig
from .settings import RunnerSettings, env_flag

__all__ = [
    # Config models
    "RunnerSettings",
    "MCPServerConfig",
    "McpConfig",
    "AssistantConfig",
    "CheckpointConfig",
    # Loader functions
    "env_flag",
    "load_config_file",
    "load_mcp_config",
    "load_assistant_config",
    "load_expected_versions",
    "strip_jsonc_comments",
    "write_json_atomic",
]
