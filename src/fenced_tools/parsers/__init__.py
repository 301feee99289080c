"""Tool call parsers."""

from .base import BaseParser, CallSpan
from .grammar import ToolCallGrammar
from .fence_parser import (
    ToolCallParser,
    extract_tool_call_block,
    has_tool_calls,
    parse_tool_calls,
)

__all__ = [
    "BaseParser",
    "CallSpan",
    "ToolCallGrammar",
    "ToolCallParser",
    "parse_tool_calls",
    "has_tool_calls",
    "extract_tool_call_block",
]
