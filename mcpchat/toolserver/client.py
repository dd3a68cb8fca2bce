"""Tool server client: spawns one MCP server, discovers and invokes its tools."""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from mcpchat.toolserver.schema import ToolDescriptor, ToolResult
from mcpchat.toolserver.transport import (
    MCPConnectionError,
    MCPRemoteError,
    MCPTransport,
)
from mcpchat.validation.config import ConfigError

logger = logging.getLogger(__name__)


class ToolServerError(Exception):
    """Raised when a single tool invocation fails."""


class ToolNotFoundError(ToolServerError):
    """The requested tool was not announced by the server."""


class ToolExecutionError(ToolServerError):
    """The server reported a failure while running the tool."""


def resolve_server_command(server_script_path: str) -> Tuple[str, List[str]]:
    """
    Pick the interpreter for a server script from its extension.

    ``.py`` scripts run with ``python`` on Windows and ``python3`` elsewhere;
    ``.js`` scripts run with ``node``.
    """
    if server_script_path.endswith(".py"):
        command = "python" if sys.platform == "win32" else "python3"
    elif server_script_path.endswith(".js"):
        command = "node"
    else:
        raise ConfigError("Server script must be a .js or .py file")
    return command, [server_script_path]


class ToolServer:
    """
    Owns the connection to one MCP tool server subprocess.

    Lifecycle: ``connect()`` -> ``discover_tools()`` -> any number of
    ``invoke()`` calls -> ``close()``.
    """

    def __init__(self, client_name: str = "mcpchat", client_version: str = "0.0.0"):
        self.client_name = client_name
        self.client_version = client_version
        self._transport: Optional[MCPTransport] = None
        self._tools: Dict[str, ToolDescriptor] = {}

    @property
    def is_connected(self) -> bool:
        return self._transport is not None and self._transport.is_running

    # ── Connection ────────────────────────────────────────────────────────

    def connect(
        self,
        server_script_path: str,
        command: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        Spawn the server and perform the MCP initialize handshake.

        Parameters
        ----------
        server_script_path : path to the server script (.py or .js)
        command : interpreter override; chosen from the extension when omitted
        env : extra environment variables for the subprocess

        Returns the server's ``initialize`` result.
        """
        if command is None:
            command, args = resolve_server_command(server_script_path)
        else:
            args = [server_script_path]

        transport = MCPTransport(command=command, args=args, env=env)
        try:
            transport.start()
            init_result = transport.initialize(self.client_name, self.client_version)
        except MCPRemoteError as exc:
            transport.stop()
            raise MCPConnectionError(f"MCP initialize failed: {exc}") from exc
        except MCPConnectionError:
            transport.stop()
            raise

        self._transport = transport
        server_info = init_result.get("serverInfo", {}) if isinstance(init_result, dict) else {}
        logger.info(
            "Connected to MCP server %s %s",
            server_info.get("name", server_script_path),
            server_info.get("version", ""),
        )
        return init_result

    def discover_tools(self) -> List[ToolDescriptor]:
        """Fetch and cache the server's tool list."""
        transport = self._require_transport()
        try:
            raw_tools = transport.list_tools()
        except MCPRemoteError as exc:
            raise MCPConnectionError(f"tools/list failed: {exc}") from exc

        try:
            tools = [ToolDescriptor.model_validate(raw) for raw in raw_tools]
        except ValidationError as exc:
            raise MCPConnectionError(f"Malformed tool description from server: {exc}") from exc

        self._tools = {tool.name: tool for tool in tools}
        logger.info("Discovered %d tools: %s", len(tools), ", ".join(self._tools))
        return tools

    @property
    def tools(self) -> List[ToolDescriptor]:
        return list(self._tools.values())

    # ── Invocation ────────────────────────────────────────────────────────

    def invoke(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """
        Call a discovered tool.

        Raises ToolNotFoundError for unknown names, ToolExecutionError when
        the server answers with an error, MCPConnectionError when the
        subprocess is gone. Nothing is retried.
        """
        if name not in self._tools:
            raise ToolNotFoundError(f"Tool not found: {name}")

        transport = self._require_transport()
        logger.info("Calling tool %s", name)
        try:
            raw_result = transport.call_tool(name, arguments or {})
        except MCPRemoteError as exc:
            raise ToolExecutionError(f"Tool {name} failed: {exc.message or exc}") from exc

        try:
            result = ToolResult.model_validate(raw_result)
        except ValidationError as exc:
            raise ToolExecutionError(f"Tool {name} returned a malformed result: {exc}") from exc

        if result.is_error:
            logger.warning("Tool %s reported an error: %s", name, result.text())
        return result

    # ── Cleanup ───────────────────────────────────────────────────────────

    def close(self) -> None:
        """Stop the server subprocess. Safe to call more than once."""
        transport = self._transport
        self._transport = None
        if transport is not None:
            transport.stop()

    def _require_transport(self) -> MCPTransport:
        if self._transport is None:
            raise MCPConnectionError("Not connected to an MCP server")
        return self._transport
