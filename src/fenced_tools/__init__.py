"""Text-embedded tool calling for models without native function calling.

The model is taught, through the system prompt, to emit calls inside
```tool_call fences. This package builds that prompt, detects fences in
streamed output, parses them into calls and formats results back into
```tool_result fences.
"""

from .config import ToolCallingSettings
from .exceptions import ConfigurationError, FencedToolsError, ToolExecutionError
from .fences import FenceKind, extract_fence, fence_inner_text
from .formatter import format_single_tool_result, format_tool_results, parse_tool_results
from .logger import get_logger, setup_logging
from .models import ParsedResponse, ParsedToolCall, ToolDefinition, ToolResult
from .parsers import (
    ToolCallGrammar,
    ToolCallParser,
    extract_tool_call_block,
    has_tool_calls,
    parse_tool_calls,
)
from .prompt import build_tool_system_prompt, prepend_system_prompt_to_messages
from .streaming import (
    DetectorState,
    TextDelta,
    ToolCallEvent,
    ToolCallFenceDetector,
    ToolCallStream,
    iter_stream_events,
)

__version__ = "0.1.0"

__all__ = [
    "ToolCallingSettings",
    "ConfigurationError",
    "FencedToolsError",
    "ToolExecutionError",
    "FenceKind",
    "extract_fence",
    "fence_inner_text",
    "format_single_tool_result",
    "format_tool_results",
    "parse_tool_results",
    "get_logger",
    "setup_logging",
    "ParsedResponse",
    "ParsedToolCall",
    "ToolDefinition",
    "ToolResult",
    "ToolCallGrammar",
    "ToolCallParser",
    "extract_tool_call_block",
    "has_tool_calls",
    "parse_tool_calls",
    "build_tool_system_prompt",
    "prepend_system_prompt_to_messages",
    "DetectorState",
    "TextDelta",
    "ToolCallEvent",
    "ToolCallFenceDetector",
    "ToolCallStream",
    "iter_stream_events",
]
