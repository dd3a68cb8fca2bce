"""mcpchat core module."""

from mcpchat.core.messages import (
    AssistantMessage,
    CompletionChoice,
    ConversationState,
    ToolCallRequest,
    ToolMessage,
    UserMessage,
)

__all__ = [
    "AssistantMessage",
    "CompletionChoice",
    "ConversationState",
    "ToolCallRequest",
    "ToolMessage",
    "UserMessage",
]
