"""Conversation messages exchanged with the chat-completion model."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from mcpchat.toolserver.schema import ToolResult


class ToolCallRequest(BaseModel):
    """A model's request to run one tool. ``arguments`` is raw JSON text."""

    id: str
    name: str
    arguments: str = ""

    def to_openai(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }

    @classmethod
    def from_openai(cls, data: Dict[str, Any]) -> "ToolCallRequest":
        function = data.get("function") or {}
        return cls(
            id=data.get("id") or "",
            name=function.get("name") or "",
            arguments=function.get("arguments") or "",
        )


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str

    def to_openai(self) -> Dict[str, Any]:
        return {"role": "user", "content": self.content}


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)

    def to_openai(self) -> Dict[str, Any]:
        message: Dict[str, Any] = {"role": "assistant", "content": self.content or ""}
        if self.tool_calls:
            message["tool_calls"] = [call.to_openai() for call in self.tool_calls]
        return message


class ToolMessage(BaseModel):
    role: Literal["tool"] = "tool"
    tool_call_id: str
    content: str

    def to_openai(self) -> Dict[str, Any]:
        return {"role": "tool", "content": self.content, "tool_call_id": self.tool_call_id}


ConversationMessage = Union[UserMessage, AssistantMessage, ToolMessage]


class CompletionChoice(BaseModel):
    """First choice of a completion response, normalised across providers."""

    content: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)
    finish_reason: Optional[str] = None

    @classmethod
    def from_openai(cls, message: Dict[str, Any], finish_reason: Optional[str] = None) -> "CompletionChoice":
        """Build from an OpenAI-style ``choices[0].message`` dict."""
        return cls(
            content=message.get("content"),
            tool_calls=[ToolCallRequest.from_openai(c) for c in message.get("tool_calls") or []],
            finish_reason=finish_reason,
        )


class ToolInvocationResult(BaseModel):
    """Result of one tool call, tagged with the request it answers."""

    tool_call_id: str
    result: ToolResult

    def serialized(self) -> str:
        """JSON text of the result content, as sent back to the model."""
        return json.dumps(self.result.content, separators=(",", ":"), ensure_ascii=False)


class ConversationState(BaseModel):
    """Message list of one query plus the number of tool rounds performed."""

    messages: List[ConversationMessage] = Field(default_factory=list)
    rounds: int = 0

    def to_openai(self) -> List[Dict[str, Any]]:
        return [message.to_openai() for message in self.messages]
