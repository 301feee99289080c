"""Per-turn streaming session combining fence detection and parsing."""

from dataclasses import dataclass
from typing import Iterable, Iterator

from fenced_tools.logger import get_logger
from fenced_tools.models import ParsedResponse, ParsedToolCall
from fenced_tools.parsers import ToolCallGrammar, ToolCallParser
from fenced_tools.streaming.detector import ToolCallFenceDetector

logger = get_logger(__name__)


@dataclass(frozen=True)
class TextDelta:
    """Prose released by the stream."""
    text: str


@dataclass(frozen=True)
class ToolCallEvent:
    """A tool call recovered from a completed block.

    Attributes:
        call: The parsed call.
        fence: Text of the block the call came from.
    """
    call: ParsedToolCall
    fence: str


StreamEvent = TextDelta | ToolCallEvent


class ToolCallStream:
    """Turns streamed model output into ordered text and tool call events.

    One instance serves one generation turn. Prose is released as soon as it
    cannot be part of a fence marker; a fence is held back until it closes
    and is then parsed into calls.

    Example:
        stream = ToolCallStream()
        for chunk in chunks:
            for event in stream.feed(chunk):
                ...
        events = stream.finish()
    """

    def __init__(
        self,
        grammar: ToolCallGrammar | str = ToolCallGrammar.JSON,
        parser: ToolCallParser | None = None,
    ):
        """Initialize the stream.

        Args:
            grammar: Grammar used to parse completed blocks.
            parser: Preconfigured parser; overrides ``grammar`` when given.
        """
        self.parser = parser or ToolCallParser(grammar)
        self.detector = ToolCallFenceDetector()
        self._text_parts: list[str] = []
        self._tool_calls: list[ParsedToolCall] = []
        self._finished = False

    @property
    def tool_calls(self) -> list[ParsedToolCall]:
        """Calls recovered so far, in order."""
        return list(self._tool_calls)

    @property
    def finished(self) -> bool:
        """Whether :meth:`finish` has run."""
        return self._finished

    def feed(self, chunk: str) -> list[StreamEvent]:
        """Feed a chunk and return the events it completes."""
        if self._finished:
            raise RuntimeError("Cannot feed a finished ToolCallStream")

        self.detector.add_chunk(chunk)
        return self._drain()

    def finish(self) -> list[StreamEvent]:
        """End the turn.

        Held-back text, including an unterminated fence, is released as
        prose. With tag or literal syntaxes enabled, calls written in those
        forms are recovered from the accumulated prose here, since they have
        no fence marker to stream on.
        """
        if self._finished:
            return []
        self._finished = True

        events: list[StreamEvent] = []
        trailing = self.detector.flush()
        if trailing:
            if trailing.lstrip().lower().startswith("```tool"):
                logger.debug("Stream ended inside a fence; flushing %d chars as text", len(trailing))
            events.append(self._text_event(trailing))

        if self.parser.grammar & (ToolCallGrammar.TAG | ToolCallGrammar.CALL_LITERAL):
            prose = "".join(self._text_parts)
            for span in self.parser.iter_spans(prose):
                if span.syntax is ToolCallGrammar.FENCE:
                    continue
                block = prose[span.start:span.end]
                for call in self.parser.parse(block).tool_calls:
                    self._tool_calls.append(call)
                    events.append(ToolCallEvent(call=call, fence=block))

        return events

    def result(self) -> ParsedResponse:
        """Calls and cleaned prose of the turn so far."""
        prose = "".join(self._text_parts)
        if self.parser.grammar & (ToolCallGrammar.TAG | ToolCallGrammar.CALL_LITERAL):
            text_content = self.parser.parse(prose).text_content
        else:
            text_content = ToolCallParser.BLANK_RUN_PATTERN.sub("\n", prose).strip()
        return ParsedResponse(tool_calls=self.tool_calls, text_content=text_content)

    def _drain(self) -> list[StreamEvent]:
        """Step the detector until it stops changing state."""
        events: list[StreamEvent] = []

        while True:
            previous = self.detector.state
            step = self.detector.detect_streaming_fence()

            if step.prefix_text:
                events.append(self._text_event(step.prefix_text))
            if step.complete_fence is not None:
                events.extend(self._fence_events(step.complete_fence))

            if self.detector.state is previous:
                return events
            logger.debug("Fence detector moved %s -> %s", previous.name, self.detector.state.name)

    def _fence_events(self, fence: str) -> list[StreamEvent]:
        calls = self.parser.parse(fence).tool_calls
        if not calls:
            logger.debug("Completed fence held no valid tool calls; releasing it as text")
            return [self._text_event(fence)]

        self._tool_calls.extend(calls)
        return [ToolCallEvent(call=call, fence=fence) for call in calls]

    def _text_event(self, text: str) -> TextDelta:
        self._text_parts.append(text)
        return TextDelta(text=text)


def iter_stream_events(
    chunks: Iterable[str],
    grammar: ToolCallGrammar | str = ToolCallGrammar.JSON,
) -> Iterator[StreamEvent]:
    """Yield events for a whole chunk sequence, including the final flush."""
    stream = ToolCallStream(grammar)
    for chunk in chunks:
        yield from stream.feed(chunk)
    yield from stream.finish()
