"""Data models for fenced tool calling.

This module provides Pydantic models for the records that flow through the
text-embedded tool calling protocol:

- ToolDefinition: a tool declaration rendered into the system prompt
- ParsedToolCall: a call recovered from a ```tool_call fence
- ToolResult: an executed tool's output, serialized into a ```tool_result fence
- ParsedResponse: the calls and prose recovered from one model turn
"""

import json
import secrets
import string
import time
from typing import Any

from pydantic import BaseModel, Field, field_validator

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_tool_call_id() -> str:
    """Generate a tool call identifier.

    Format is ``call_<epoch milliseconds>_<7 base36 characters>``.
    """
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"call_{int(time.time() * 1000)}_{suffix}"


class ToolDefinition(BaseModel):
    """Declaration of a tool the model may call.

    The input schema is a JSON-Schema-shaped document that is passed through
    to the prompt untouched.

    Attributes:
        name: Name of the tool. Unique within one request.
        description: Human readable description shown to the model.
        input_schema: JSON Schema of the tool arguments.

    Example:
        >>> tool = ToolDefinition(name="get_weather", description="Weather lookup")
        >>> tool.to_prompt_entry()["description"]
        'Weather lookup'
    """

    name: str = Field(..., min_length=1, description="Name of the tool")
    description: str | None = Field(default=None)
    input_schema: dict[str, Any] | None = Field(default=None)

    model_config = {"frozen": True}

    def to_prompt_entry(self) -> dict[str, Any]:
        """Render the entry listed under "Available Tools" in the system prompt."""
        return {
            "name": self.name,
            "description": self.description if self.description is not None else "No description provided.",
            "parameters": self.input_schema or {"type": "object", "properties": {}},
        }

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI tools format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description or "",
                "parameters": self.input_schema or {"type": "object", "properties": {}},
            },
        }

    @classmethod
    def from_openai_format(cls, data: dict[str, Any]) -> "ToolDefinition":
        """Create from OpenAI tools format.

        Flat dictionaries (``{"name": ..., "inputSchema": ...}``) are accepted
        as well, so declarations from other SDK shapes can be passed directly.
        """
        func = data.get("function", data)
        schema = func.get("parameters")
        if schema is None:
            schema = func.get("input_schema", func.get("inputSchema"))
        return cls(
            name=func.get("name", ""),
            description=func.get("description"),
            input_schema=schema,
        )


class ParsedToolCall(BaseModel):
    """A single tool call recovered from model output.

    Attributes:
        tool_call_id: Identifier of the call, generated when the model gave none.
        tool_name: Name of the tool to invoke.
        args: Arguments of the call. Object-shaped for JSON syntax, but may be
            any JSON value or the raw string the model produced.
    """

    tool_call_id: str = Field(default_factory=generate_tool_call_id)
    tool_name: str = Field(..., min_length=1)
    args: Any = Field(default_factory=dict)

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI Chat Completions API tool_calls format."""
        arguments = self.args if isinstance(self.args, str) else json.dumps(self.args)
        return {
            "id": self.tool_call_id,
            "type": "function",
            "function": {
                "name": self.tool_name,
                "arguments": arguments,
            },
        }


class ToolResult(BaseModel):
    """Result of executing one tool call.

    Attributes:
        tool_call_id: Identifier of the call this answers, if known.
        tool_name: Name of the tool that ran.
        result: Any JSON-compatible value. Missing values are stored as None.
        is_error: Whether ``result`` describes a failure.
    """

    tool_call_id: str | None = Field(default=None)
    tool_name: str = Field(...)
    result: Any = Field(default=None)
    is_error: bool = Field(default=False)

    @field_validator("is_error", mode="before")
    @classmethod
    def coerce_missing_flag(cls, v: Any) -> bool:
        """Treat an explicit None flag as "not an error"."""
        if v is None:
            return False
        return v


class ParsedResponse(BaseModel):
    """Calls and prose recovered from one model turn.

    Attributes:
        tool_calls: Accepted calls across all fences, in order of appearance.
        text_content: The turn's text with every fence removed.
    """

    tool_calls: list[ParsedToolCall] = Field(default_factory=list)
    text_content: str = Field(default="")

    @property
    def num_calls(self) -> int:
        """Return the number of tool calls extracted."""
        return len(self.tool_calls)

    @property
    def has_calls(self) -> bool:
        """Return whether any tool calls were found."""
        return len(self.tool_calls) > 0

    def get_call_names(self) -> list[str]:
        """Get list of all tool names called."""
        return [call.tool_name for call in self.tool_calls]

    def to_openai_format(self) -> list[dict[str, Any]]:
        """Convert all tool calls to OpenAI API format."""
        return [call.to_openai_format() for call in self.tool_calls]
