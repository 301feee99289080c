"""Abstract base class for span-based tool call parsers."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator

from fenced_tools.models import ParsedResponse, ParsedToolCall
from fenced_tools.parsers.grammar import ToolCallGrammar


@dataclass(frozen=True)
class CallSpan:
    """One region of text recognized as a tool call block.

    Attributes:
        start: Index where the block begins.
        end: Index right after the block.
        syntax: The grammar member that matched.
        payload: JSON payload for fences and tags, argument list for literals.
        function_name: Function name of a call literal, None otherwise.
    """
    start: int
    end: int
    syntax: ToolCallGrammar
    payload: str
    function_name: str | None = None


class BaseParser(ABC):
    """Base class for parsers that locate call blocks inside prose.

    Subclasses say where the blocks are (:meth:`iter_spans`) and what calls a
    block holds (:meth:`calls_from_span`). Splitting a turn into calls and
    prose, detection and extraction are shared.

    Example:
        class BracketParser(BaseParser):
            @property
            def name(self) -> str:
                return "bracket-parser"

            def iter_spans(self, text):
                ...

            def calls_from_span(self, span):
                ...
    """

    BLANK_RUN_PATTERN = re.compile(r'\n{2,}')

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this parser.

        Used in logging.
        """
        pass

    @abstractmethod
    def iter_spans(self, text: str) -> Iterator[CallSpan]:
        """Yield non-overlapping call blocks in order of appearance."""
        pass

    @abstractmethod
    def calls_from_span(self, span: CallSpan) -> list[ParsedToolCall]:
        """Convert one block into calls; must not raise on malformed content."""
        pass

    def parse(self, text: str) -> ParsedResponse:
        """Parse a model turn into tool calls and prose.

        Args:
            text: Full text of the turn.

        Returns:
            ParsedResponse with every accepted call, in order of appearance,
            and the text with all call blocks removed. Text without any block
            is returned unchanged.
        """
        spans = list(self.iter_spans(text))
        if not spans:
            return ParsedResponse(tool_calls=[], text_content=text)

        tool_calls: list[ParsedToolCall] = []
        pieces: list[str] = []
        cursor = 0

        for span in spans:
            pieces.append(text[cursor:span.start])
            cursor = span.end
            tool_calls.extend(self.calls_from_span(span))

        pieces.append(text[cursor:])
        text_content = self.BLANK_RUN_PATTERN.sub("\n", "".join(pieces)).strip()

        return ParsedResponse(tool_calls=tool_calls, text_content=text_content)

    def has_tool_calls(self, text: str) -> bool:
        """Check whether the text contains at least one call block."""
        return next(self.iter_spans(text), None) is not None

    def extract_tool_call_block(self, text: str) -> str | None:
        """Return the first call block, delimiters included, or None."""
        span = next(self.iter_spans(text), None)
        return text[span.start:span.end] if span else None

    def parse_multiple(self, texts: list[str]) -> list[ParsedResponse]:
        """Parse multiple texts in batch."""
        return [self.parse(text) for text in texts]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"
