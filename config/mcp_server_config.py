"""MCP configuration models for the assistant's .mcp.json file."""

from pydantic import BaseModel, ConfigDict, Field


class MCPServerConfig(BaseModel):
    """MCP (Model Context Protocol) server configuration."""

    model_config = ConfigDict(extra="allow")

    command: str = Field(description="Command to start the MCP server")
    args: list[str] = Field(default_factory=list, description="Command arguments")
    env: dict[str, str] = Field(
        default_factory=dict, description="Environment variables"
    )
    cwd: str | None = Field(default=None, description="Working directory")


class McpConfig(BaseModel):
    """Top-level .mcp.json document: server name to connection parameters."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    servers: dict[str, MCPServerConfig] = Field(
        default_factory=dict,
        alias="mcpServers",
        description="MCP servers by name",
    )
