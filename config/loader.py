"""Configuration loading utilities."""

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from core.exceptions import ConfigError

from .assistant_config import AssistantConfig
from .defaults import EXPECTED_VERSIONS, EXPECTED_VERSIONS_ENV
from .mcp_server_config import McpConfig


def strip_jsonc_comments(content: str) -> str:
    """
    Strip comments from JSONC content to convert to valid JSON.

    Handles:
    - Single-line comments: // comment
    - Multi-line comments: /* comment */

    Args:
        content: JSONC content string

    Returns:
        JSON string with comments removed
    """
    # "//" right after a colon is a URL scheme, not a comment
    content = re.sub(r"(?<!:)//.*?$", "", content, flags=re.MULTILINE)
    content = re.sub(r"/\*.*?\*/", "", content, flags=re.DOTALL)
    return content


def load_config_file(path: Path) -> dict[str, Any] | None:
    """
    Load a JSON config file from the given path.

    Supports both .json and .jsonc files with comment stripping.

    Args:
        path: Path to the config file

    Returns:
        Parsed config dictionary or None if file doesn't exist

    Raises:
        ConfigError: If the file exists but is not a valid JSON object
    """
    if not path.is_file():
        return None

    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix == ".jsonc":
            content = strip_jsonc_comments(content)
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path} is invalid JSON: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return data


def load_mcp_config(path: Path) -> McpConfig | None:
    """Load and validate an .mcp.json file; None when absent."""
    data = load_config_file(path)
    if data is None:
        return None
    try:
        return McpConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{path} has an invalid MCP layout: {e}") from e


def load_assistant_config(path: Path) -> AssistantConfig | None:
    """Load and validate the assistant's config.json; None when absent."""
    data = load_config_file(path)
    if data is None:
        return None
    try:
        return AssistantConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{path} has an invalid layout: {e}") from e


def write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write JSON next to the target and rename it into place."""
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def load_expected_versions(path: Path | None = None) -> dict[str, str]:
    """
    Return the expected tool version table.

    The built-in table is overlaid with a YAML mapping of tool -> version read
    from `path`, or from the file named by EXPECTED_VERSIONS_FILE.
    """
    versions = dict(EXPECTED_VERSIONS)

    if path is None:
        env_path = os.environ.get(EXPECTED_VERSIONS_ENV)
        if not env_path:
            return versions
        path = Path(env_path)

    try:
        overrides = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load expected versions from {path}: {e}") from e

    if not isinstance(overrides, dict):
        raise ConfigError(f"{path} must contain a mapping of tool: version")

    for tool, version in overrides.items():
        versions[str(tool)] = str(version).lstrip("v")
    return versions
