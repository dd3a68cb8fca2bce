"""MCP server communication via stdio subprocess transport."""

from __future__ import annotations

import json
import logging
import os
import subprocess
import threading
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"


class MCPTransportError(Exception):
    """Raised when MCP transport communication fails."""


class MCPConnectionError(MCPTransportError):
    """The server process could not be reached or broke the protocol."""


class MCPRemoteError(MCPTransportError):
    """The server answered a request with a JSON-RPC error object."""

    def __init__(self, code: Optional[int], message: str, data: Any = None):
        super().__init__(f"MCP error {code}: {message}")
        self.code = code
        self.message = message
        self.data = data


class MCPTransport:
    """
    Communicate with an MCP server over stdin/stdout (JSON-RPC).

    Messages are newline-delimited JSON. The subprocess is started by
    ``start()`` and stopped explicitly via ``stop()`` or when the transport
    is garbage-collected.
    """

    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        self.command = command
        self.args = args or []
        self.env = env or {}
        self._process: Optional[subprocess.Popen] = None
        self._request_id = 0
        self._lock = threading.Lock()

    # ── Lifecycle ─────────────────────────────────────────────────────────

    def start(self) -> None:
        """Spawn the MCP server subprocess."""
        if self.is_running:
            return

        merged_env = {**os.environ, **self.env}
        logger.debug("Starting MCP server: %s %s", self.command, " ".join(self.args))
        try:
            self._process = subprocess.Popen(
                [self.command] + self.args,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                env=merged_env,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise MCPConnectionError(
                f"MCP server command could not be started: {self.command} ({exc})"
            ) from exc

    def stop(self) -> None:
        """Terminate the MCP server subprocess."""
        process = self._process
        self._process = None
        if process is None:
            return
        for stream in (process.stdin, process.stdout):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
        if process.poll() is None:
            try:
                process.terminate()
                process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                logger.warning("MCP server did not exit after terminate, killing it")
                process.kill()
                process.wait()

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    # ── JSON-RPC ──────────────────────────────────────────────────────────

    def send(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a JSON-RPC request and return the result."""
        if not self.is_running:
            raise MCPConnectionError("MCP server is not running")

        with self._lock:
            self._request_id += 1
            request_id = self._request_id
            request: Dict[str, Any] = {
                "jsonrpc": "2.0",
                "id": request_id,
                "method": method,
            }
            if params is not None:
                request["params"] = params

            logger.debug("-> %s (id=%s)", method, request_id)
            self._write(request)
            response = self._read_response(request_id)

        if "error" in response:
            err = response["error"] or {}
            raise MCPRemoteError(err.get("code"), err.get("message", ""), err.get("data"))

        return response.get("result") or {}

    def notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Send a JSON-RPC notification (no response expected)."""
        if not self.is_running:
            raise MCPConnectionError("MCP server is not running")

        message: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        with self._lock:
            logger.debug("-> %s (notification)", method)
            self._write(message)

    def _write(self, message: Dict[str, Any]) -> None:
        line = json.dumps(message) + "\n"
        try:
            self._process.stdin.write(line.encode())
            self._process.stdin.flush()
        except (BrokenPipeError, OSError, ValueError) as exc:
            raise MCPConnectionError(f"MCP transport error: {exc}") from exc

    def _read_response(self, request_id: int) -> Dict[str, Any]:
        """Read lines until the response for ``request_id`` arrives."""
        while True:
            try:
                raw = self._process.stdout.readline()
            except (OSError, ValueError) as exc:
                raise MCPConnectionError(f"MCP transport error: {exc}") from exc
            if not raw:
                raise MCPConnectionError("MCP server closed connection (empty response)")

            try:
                message = json.loads(raw.decode())
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.debug("Ignoring non-JSON output from MCP server: %r", raw[:200])
                continue
            if not isinstance(message, dict):
                logger.debug("Ignoring non-object message from MCP server: %r", message)
                continue

            if "method" in message:
                self._handle_server_message(message)
                continue

            if message.get("id") != request_id:
                logger.debug("Ignoring response for unknown request id %r", message.get("id"))
                continue

            logger.debug("<- response (id=%s)", request_id)
            return message

    def _handle_server_message(self, message: Dict[str, Any]) -> None:
        """Answer server-initiated requests; notifications are only logged."""
        method = message["method"]
        if "id" not in message:
            logger.debug("<- %s (notification)", method)
            return

        logger.debug("<- %s (server request id=%s)", method, message["id"])
        if method == "ping":
            reply: Dict[str, Any] = {"jsonrpc": "2.0", "id": message["id"], "result": {}}
        else:
            reply = {
                "jsonrpc": "2.0",
                "id": message["id"],
                "error": {"code": -32601, "message": f"Method not found: {method}"},
            }
        self._write(reply)

    # ── MCP Protocol ──────────────────────────────────────────────────────

    def initialize(self, client_name: str, client_version: str) -> Dict[str, Any]:
        """Perform the MCP initialize handshake."""
        result = self.send("initialize", {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": {"name": client_name, "version": client_version},
        })
        self.notify("notifications/initialized")
        return result

    def list_tools(self) -> List[Dict[str, Any]]:
        """Fetch the tool list from the MCP server."""
        result = self.send("tools/list")
        if not isinstance(result, dict) or not isinstance(result.get("tools", []), list):
            raise MCPConnectionError(f"Malformed tools/list result: {result!r}")
        return result.get("tools", [])

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Call a tool on the MCP server."""
        return self.send("tools/call", {"name": name, "arguments": arguments or {}})

    # ── Cleanup ───────────────────────────────────────────────────────────

    def __del__(self):
        try:
            self.stop()
        except Exception:
            pass
