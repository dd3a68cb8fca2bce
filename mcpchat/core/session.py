"""
mcpchat Chat Session - query processing with MCP tool calls.

Each query runs through at most ``max_tool_rounds`` tool rounds:

1. Send the user's message (and the tool specs) to the model
2. If the model requested tools, run them one by one against the server
3. Send the tool results back and collect the model's final answer

No history is kept between queries; every call starts a fresh message list.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from mcpchat.core.messages import (
    AssistantMessage,
    CompletionChoice,
    ConversationState,
    ToolCallRequest,
    ToolInvocationResult,
    ToolMessage,
    UserMessage,
)
from mcpchat.providers.base import Provider
from mcpchat.toolserver.adapter import adapt_all
from mcpchat.toolserver.client import ToolServer
from mcpchat.toolserver.schema import ModelToolSpec

logger = logging.getLogger(__name__)


class ArgumentParseError(ValueError):
    """The model produced tool arguments that are not a JSON object."""

    def __init__(self, tool_name: str, arguments: str, reason: str):
        super().__init__(f"Invalid arguments for tool {tool_name}: {reason} (got {arguments!r})")
        self.tool_name = tool_name
        self.arguments = arguments


def format_tool_trace(name: str, args: Dict[str, Any]) -> str:
    """Trace line added to the answer for every tool call."""
    return f"[Calling tool {name} with args {json.dumps(args, separators=(',', ':'), ensure_ascii=False)}]"


def parse_arguments(call: ToolCallRequest) -> Dict[str, Any]:
    """Decode a tool call's JSON arguments into a dict."""
    try:
        args = json.loads(call.arguments)
    except json.JSONDecodeError as exc:
        raise ArgumentParseError(call.name, call.arguments, str(exc)) from exc
    if not isinstance(args, dict):
        raise ArgumentParseError(call.name, call.arguments, "expected a JSON object")
    return args


class ChatSession:
    """
    Bridges one chat model and one MCP tool server.

    The tool spec list is written once by ``connect()`` and only read
    afterwards. ``process_query()`` is synchronous; tool calls run strictly
    in the order the model requested them and the first failure aborts
    the rest of the query.

    Example:
        >>> session = ChatSession(ProviderFactory.create("gpt-4o", config))
        >>> session.connect("weather_server.py")
        ['get_forecast', 'get_alerts']
        >>> print(session.process_query("Any alerts in CA?"))
        >>> session.cleanup()
    """

    def __init__(
        self,
        provider: Provider,
        tool_server: Optional[ToolServer] = None,
        max_tool_rounds: int = 1,
    ):
        if max_tool_rounds < 1:
            raise ValueError("max_tool_rounds must be at least 1")
        self.provider = provider
        self.tool_server = tool_server if tool_server is not None else ToolServer()
        self.max_tool_rounds = max_tool_rounds
        self.tools: List[ModelToolSpec] = []

    # ── Connection ────────────────────────────────────────────────────────

    def connect(self, server_script_path: str, command: Optional[str] = None) -> List[str]:
        """Connect to the server, discover its tools and adapt them. Returns tool names."""
        self.tool_server.connect(server_script_path, command=command)
        descriptors = self.tool_server.discover_tools()

        self.tools = adapt_all(descriptors)
        names = [tool.name for tool in self.tools]
        logger.info("Connected to server with tools: %s", names)
        return names

    def cleanup(self) -> None:
        """Release the server connection. Failures are logged, never raised."""
        try:
            self.tool_server.close()
        except Exception as exc:
            logger.warning("Failed to cleanup: %s", exc)

    # ── Query Processing ──────────────────────────────────────────────────

    def process_query(self, query: str) -> str:
        """
        Answer one query, running requested tools along the way.

        Returns the newline-joined output: model text and one trace line
        per tool call, in the order they were produced.
        """
        state = ConversationState(messages=[UserMessage(content=query)])
        output: List[str] = []

        choice = self._complete(state)
        if choice.content:
            output.append(choice.content)

        while choice.tool_calls:
            if state.rounds >= self.max_tool_rounds:
                logger.warning(
                    "Ignoring %d tool call(s): limit of %d tool round(s) reached",
                    len(choice.tool_calls),
                    self.max_tool_rounds,
                )
                break

            results = self._call_tools(choice.tool_calls, output)

            state.messages.append(
                AssistantMessage(content=choice.content or "", tool_calls=choice.tool_calls)
            )
            for result in results:
                state.messages.append(
                    ToolMessage(tool_call_id=result.tool_call_id, content=result.serialized())
                )
            state.rounds += 1

            choice = self._complete(state)
            if choice.content:
                output.append(choice.content)

        return "\n".join(output)

    def _complete(self, state: ConversationState) -> CompletionChoice:
        # An empty tool list is sent as no tools at all.
        return self.provider.complete(list(state.messages), tools=self.tools or None)

    def _call_tools(
        self, tool_calls: List[ToolCallRequest], output: List[str]
    ) -> List[ToolInvocationResult]:
        """Run tool calls sequentially, appending a trace line before each one."""
        results: List[ToolInvocationResult] = []
        for call in tool_calls:
            args = parse_arguments(call)
            trace = format_tool_trace(call.name, args)
            logger.info(trace)
            output.append(trace)

            result = self.tool_server.invoke(call.name, args)
            results.append(ToolInvocationResult(tool_call_id=call.id, result=result))
        return results
