"""
Tool server bridge for mcpchat.

Spawns an MCP server as a subprocess, speaks JSON-RPC to it over stdio,
and converts its tool descriptions into OpenAI function-calling specs.
"""

from mcpchat.toolserver.adapter import adapt, adapt_all
from mcpchat.toolserver.client import (
    ToolExecutionError,
    ToolNotFoundError,
    ToolServer,
    ToolServerError,
    resolve_server_command,
)
from mcpchat.toolserver.schema import ModelToolSpec, ToolDescriptor, ToolParameters, ToolResult
from mcpchat.toolserver.transport import (
    MCPConnectionError,
    MCPRemoteError,
    MCPTransport,
    MCPTransportError,
)

__all__ = [
    "adapt",
    "adapt_all",
    "ModelToolSpec",
    "ToolDescriptor",
    "ToolParameters",
    "ToolResult",
    "ToolServer",
    "ToolServerError",
    "ToolNotFoundError",
    "ToolExecutionError",
    "resolve_server_command",
    "MCPTransport",
    "MCPTransportError",
    "MCPConnectionError",
    "MCPRemoteError",
]
