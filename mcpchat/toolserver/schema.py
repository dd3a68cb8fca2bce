"""Data models for MCP tool descriptors, results and model-facing tool specs."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ToolDescriptor(BaseModel):
    """A tool as announced by the MCP server in ``tools/list``."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    input_schema: Dict[str, Any] = Field(default_factory=dict, alias="inputSchema")

    @field_validator("input_schema", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value


class ToolResult(BaseModel):
    """Payload returned by ``tools/call``. Extra keys are kept untouched."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    content: List[Dict[str, Any]] = Field(default_factory=list)
    is_error: bool = Field(default=False, alias="isError")

    def text(self) -> str:
        """Concatenated text parts, for logging and display."""
        return "\n".join(str(part.get("text", part)) for part in self.content)


class ToolParameters(BaseModel):
    """JSON schema object describing a function's arguments."""

    model_config = ConfigDict(frozen=True)

    type: str = "object"
    properties: Dict[str, Any] = Field(default_factory=dict)
    required: List[Any] = Field(default_factory=list)


class ModelToolSpec(BaseModel):
    """Tool definition in the shape a chat-completion model expects."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str
    parameters: ToolParameters = Field(default_factory=ToolParameters)

    def to_openai(self) -> Dict[str, Any]:
        """Render as an OpenAI ``tools`` entry."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters.model_dump(),
            },
        }
