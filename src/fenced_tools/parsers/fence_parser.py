"""Parser for tool calls embedded in model text."""

import json
import re
from typing import Any, Iterator

from fenced_tools.fences import FenceKind, find_fence
from fenced_tools.logger import get_logger
from fenced_tools.models import ParsedResponse, ParsedToolCall, generate_tool_call_id
from fenced_tools.parsers.base import BaseParser, CallSpan
from fenced_tools.parsers.grammar import ToolCallGrammar

logger = get_logger(__name__)


class ToolCallParser(BaseParser):
    """Recovers tool calls from model output.

    One parser serves every provider variant; the accepted syntaxes are
    chosen by the ``grammar`` flag set.

    Supported payloads inside a fence or tag:
        - A single JSON object: {"name": "tool", "arguments": {...}}
        - A JSON array of such objects
        - Newline-separated JSON objects (invalid lines are skipped)

    ``parameters`` is accepted in place of ``arguments``.

    Attributes:
        grammar: Syntaxes this parser recognizes.
    """

    TAG_PATTERN = re.compile(
        r'<tool_call>\s*([\s\S]*?)\s*</tool_call>',
        re.IGNORECASE
    )

    CALL_LITERAL_PATTERN = re.compile(
        r'\[(\w+)\(([^)]*)\)\]'
    )

    def __init__(self, grammar: ToolCallGrammar | str = ToolCallGrammar.JSON):
        """Initialize the parser.

        Args:
            grammar: Grammar flags, or a preset name such as "extended".
        """
        self.grammar = ToolCallGrammar.from_name(grammar)

    @property
    def name(self) -> str:
        """Return the parser identifier."""
        return f"fence-parser[{self.grammar.label}]"

    def parse_payload(self, payload: str) -> list[ParsedToolCall]:
        """Parse the inner text of one fence (delimiters already stripped)."""
        calls: list[ParsedToolCall] = []
        for candidate in self._json_candidates(payload.strip()):
            call = self._candidate_to_call(candidate)
            if call is not None:
                calls.append(call)
        return calls

    def iter_spans(self, text: str) -> Iterator[CallSpan]:
        """Yield non-overlapping call blocks in order of appearance.

        At every cursor position each enabled syntax is searched and the
        earliest match wins; ties go to fences, then tags, then literals.
        """
        cursor = 0
        while cursor < len(text):
            found = [
                span for span in (
                    self._next_fence(text, cursor),
                    self._next_tag(text, cursor),
                    self._next_literal(text, cursor),
                )
                if span is not None
            ]
            if not found:
                return

            span = min(found, key=lambda s: s.start)
            yield span
            cursor = span.end

    def _next_fence(self, text: str, cursor: int) -> CallSpan | None:
        if ToolCallGrammar.FENCE not in self.grammar:
            return None
        fence = find_fence(text, FenceKind.CALL, cursor)
        if fence is None:
            return None
        return CallSpan(fence.start, fence.end, ToolCallGrammar.FENCE, fence.inner(text))

    def _next_tag(self, text: str, cursor: int) -> CallSpan | None:
        if ToolCallGrammar.TAG not in self.grammar:
            return None
        match = self.TAG_PATTERN.search(text, cursor)
        if match is None:
            return None
        return CallSpan(match.start(), match.end(), ToolCallGrammar.TAG, match.group(1).strip())

    def _next_literal(self, text: str, cursor: int) -> CallSpan | None:
        if ToolCallGrammar.CALL_LITERAL not in self.grammar:
            return None
        match = self.CALL_LITERAL_PATTERN.search(text, cursor)
        if match is None:
            return None
        return CallSpan(
            match.start(),
            match.end(),
            ToolCallGrammar.CALL_LITERAL,
            match.group(2),
            function_name=match.group(1),
        )

    def calls_from_span(self, span: CallSpan) -> list[ParsedToolCall]:
        """Convert one block into calls; malformed parts only narrow the result."""
        if span.syntax is ToolCallGrammar.CALL_LITERAL:
            return [ParsedToolCall(
                tool_call_id=generate_tool_call_id(),
                tool_name=span.function_name,
                args=self._parse_literal_args(span.payload),
            )]

        if not span.payload:
            return []
        return self.parse_payload(span.payload)

    def _json_candidates(self, payload: str) -> list[Any]:
        """Decode a payload as one JSON value, falling back to JSON lines."""
        if not payload:
            return []

        try:
            parsed = json.loads(payload)
        except (ValueError, RecursionError):
            pass
        else:
            return parsed if isinstance(parsed, list) else [parsed]

        candidates = []
        for line in payload.split("\n"):
            line = line.strip()
            if not line:
                continue
            try:
                candidates.append(json.loads(line))
            except (ValueError, RecursionError):
                logger.debug("Skipping unparseable tool call line: %r", line[:200])
        return candidates

    def _candidate_to_call(self, candidate: Any) -> ParsedToolCall | None:
        """Resolve one decoded JSON value into a call, or None to drop it."""
        if not isinstance(candidate, dict):
            logger.debug("Dropping non-object tool call candidate: %r", candidate)
            return None

        name = candidate.get("name")
        if not isinstance(name, str) or not name:
            logger.debug("Dropping tool call candidate without a name: %r", candidate)
            return None

        args = candidate.get("arguments")
        if args is None or args == "":
            args = candidate.get("parameters")
        if args is None or args == "":
            args = {}

        # Some models double-encode arguments as a JSON string
        if isinstance(args, str):
            try:
                args = json.loads(args)
            except (ValueError, RecursionError):
                pass

        call_id = candidate.get("id")
        return ParsedToolCall(
            tool_call_id=str(call_id) if call_id else generate_tool_call_id(),
            tool_name=name,
            args=args,
        )

    def _parse_literal_args(self, args_text: str) -> dict[str, str]:
        """Parse ``key="value", key2=value2`` into a dict of strings."""
        arguments: dict[str, str] = {}
        if not args_text.strip():
            return arguments

        for pair in self._split_top_level(args_text):
            pair = pair.strip()
            equal_index = pair.find("=")
            if equal_index <= 0:
                continue

            key = pair[:equal_index].strip()
            value = pair[equal_index + 1:].strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
                value = value[1:-1]
            arguments[key] = value

        return arguments

    def _split_top_level(self, text: str) -> list[str]:
        """Split on commas that are outside quotes and brackets."""
        parts: list[str] = []
        current: list[str] = []
        depth = 0
        quote: str | None = None

        for char in text:
            if quote is not None:
                if char == quote:
                    quote = None
            elif char in ('"', "'"):
                quote = char
            elif char in "[{(":
                depth += 1
            elif char in "]})":
                depth = max(0, depth - 1)
            elif char == "," and depth == 0:
                parts.append("".join(current))
                current = []
                continue
            current.append(char)

        parts.append("".join(current))
        return parts


_DEFAULT_PARSERS: dict[ToolCallGrammar, ToolCallParser] = {}


def _parser_for(grammar: ToolCallGrammar | str) -> ToolCallParser:
    resolved = ToolCallGrammar.from_name(grammar)
    if resolved not in _DEFAULT_PARSERS:
        _DEFAULT_PARSERS[resolved] = ToolCallParser(resolved)
    return _DEFAULT_PARSERS[resolved]


def parse_tool_calls(text: str, grammar: ToolCallGrammar | str = ToolCallGrammar.JSON) -> ParsedResponse:
    """Parse a model turn with the given grammar."""
    return _parser_for(grammar).parse(text)


def has_tool_calls(text: str, grammar: ToolCallGrammar | str = ToolCallGrammar.JSON) -> bool:
    """Check whether a model turn contains a call block."""
    return _parser_for(grammar).has_tool_calls(text)


def extract_tool_call_block(text: str, grammar: ToolCallGrammar | str = ToolCallGrammar.JSON) -> str | None:
    """Return the first call block of a model turn, or None."""
    return _parser_for(grammar).extract_tool_call_block(text)
