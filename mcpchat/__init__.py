"""
mcpchat - Chat with a model that can call MCP server tools.

A small CLI client that connects one chat-completion model to one
Model Context Protocol server running as a subprocess.

Architecture:
- toolserver/  spawns the server, speaks JSON-RPC over stdio, adapts tool schemas
- providers/   chat-completion APIs with function calling
- core/        the query protocol: model -> tools -> model
- cli/         the interactive REPL
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

from mcpchat.core.session import ArgumentParseError, ChatSession
from mcpchat.toolserver.adapter import adapt
from mcpchat.toolserver.client import ToolServer

__all__ = [
    "ArgumentParseError",
    "ChatSession",
    "ToolServer",
    "adapt",
    "__version__",
]
