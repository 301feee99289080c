"""
Exception classes for fenced tool calling.

Parsing, detection and formatting never raise on malformed model output;
these exceptions cover caller mistakes and tool execution failures.
"""


class FencedToolsError(Exception):
    """Base exception for all library errors."""

    pass


class ConfigurationError(FencedToolsError):
    """Raised when a backend or grammar name cannot be resolved."""

    pass


class ToolExecutionError(FencedToolsError):
    """Raised when a tool executor fails while handling a parsed call."""

    def __init__(self, tool_name: str, original: BaseException):
        self.tool_name = tool_name
        self.original = original
        super().__init__(f"Tool '{tool_name}' failed: {original}")
