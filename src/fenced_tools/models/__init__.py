"""Data models for fenced tool calling.

This module provides Pydantic-validated models for:
- ToolDefinition: Tool declaration rendered into the system prompt
- ParsedToolCall: Call recovered from a tool_call fence
- ToolResult: Executed tool output
- ParsedResponse: Calls and prose of one model turn
"""

from .tool_call import (
    ParsedResponse,
    ParsedToolCall,
    ToolDefinition,
    ToolResult,
    generate_tool_call_id,
)

__all__ = [
    "ToolDefinition",
    "ParsedToolCall",
    "ToolResult",
    "ParsedResponse",
    "generate_tool_call_id",
]
