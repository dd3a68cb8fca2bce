"""Shared fixtures for mcpchat tests."""

import sys
from pathlib import Path
from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from mcpchat.core.messages import CompletionChoice, ToolCallRequest
from mcpchat.providers.base import Provider
from mcpchat.toolserver.client import ToolServer
from mcpchat.toolserver.schema import ToolResult
from mcpchat.validation.config import Config

FAKE_SERVER = Path(__file__).parent / "fixtures" / "fake_server.py"


def choice(content: Optional[str] = None, calls: Optional[List[tuple]] = None) -> CompletionChoice:
    """Build a completion choice; ``calls`` holds (id, name, arguments) triples."""
    return CompletionChoice(
        content=content,
        tool_calls=[ToolCallRequest(id=i, name=n, arguments=a) for i, n, a in (calls or [])],
    )


def text_result(value) -> ToolResult:
    return ToolResult(content=[{"type": "text", "text": str(value)}])


@pytest.fixture
def config():
    """Config with no files behind it."""
    return Config(global_config={}, local_config={})


@pytest.fixture
def provider():
    """Provider double; set ``provider.complete.side_effect`` per test."""
    return MagicMock(spec=Provider)


@pytest.fixture
def tool_server():
    """ToolServer double."""
    return MagicMock(spec=ToolServer)


@pytest.fixture
def fake_server_env(monkeypatch):
    """Select the fake server's behaviour: ``fake_server_env("no_tools")``."""
    def _set(mode: str) -> None:
        monkeypatch.setenv("FAKE_SERVER_MODE", mode)
    _set("normal")
    return _set


@pytest.fixture
def connected_server(fake_server_env):
    """A ToolServer connected to the fake server, tools discovered."""
    server = ToolServer(client_name="mcpchat-tests", client_version="0.0.1")
    server.connect(str(FAKE_SERVER), command=sys.executable)
    server.discover_tools()
    yield server
    server.close()
