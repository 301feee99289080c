"""Incremental detection of tool call fences in a token stream."""

from dataclasses import dataclass
from enum import Enum, auto

from fenced_tools.fences import (
    FENCE_DELIMITER,
    FenceKind,
    find_fence,
    find_opener,
    partial_marker_overlap,
)


class DetectorState(Enum):
    """Streaming detector modes."""
    SCANNING = auto()   # Outside any fence
    IN_FENCE = auto()   # Collecting a fence payload


@dataclass(frozen=True)
class FenceDetectionResult:
    """Outcome of one batch-mode scan.

    Attributes:
        prefix_text: Prose that can safely be emitted.
        fence: The complete fence block, delimiters included, or None.
        remaining_text: Text that followed the fence, handed back to the caller.
        overlap_length: Characters held back because they may start an opener.
    """
    prefix_text: str = ""
    fence: str | None = None
    remaining_text: str = ""
    overlap_length: int = 0


@dataclass(frozen=True)
class StreamingFenceResult:
    """Outcome of one incremental step.

    Attributes:
        prefix_text: Prose released by this step.
        complete_fence: A fence that closed during this step, or None.
        in_fence: Whether the detector is inside a fence after the step.
    """
    prefix_text: str = ""
    complete_fence: str | None = None
    in_fence: bool = False

    @property
    def has_output(self) -> bool:
        """Whether the step released any text."""
        return bool(self.prefix_text) or self.complete_fence is not None


def _split_safe_prefix(buffer: str, kind: FenceKind) -> tuple[str, str]:
    """Split off the prefix that cannot be the start of an opening marker."""
    cut = len(buffer) - partial_marker_overlap(buffer, kind)
    return buffer[:cut], buffer[cut:]


def scan_buffer(buffer: str, kind: FenceKind = FenceKind.CALL) -> tuple[str, FenceDetectionResult]:
    """Batch-mode transition: ``buffer -> (buffer', emission)``.

    Three outcomes:
        - complete fence: prefix, fence and trailing text are emitted, the
          buffer is emptied
        - open fence without closer: prefix emitted, opener onward retained
        - no opener: safe prefix emitted, a possible partial opener retained
    """
    opener = find_opener(buffer, kind)

    if opener is None:
        prefix, tail = _split_safe_prefix(buffer, kind)
        return tail, FenceDetectionResult(prefix_text=prefix, overlap_length=len(tail))

    span = find_fence(buffer, kind, opener[0])
    if span is None:
        return buffer[opener[0]:], FenceDetectionResult(prefix_text=buffer[:opener[0]])

    return "", FenceDetectionResult(
        prefix_text=buffer[:span.start],
        fence=span.block(buffer),
        remaining_text=buffer[span.end:],
    )


def step_streaming(
    state: DetectorState,
    buffer: str,
    kind: FenceKind = FenceKind.CALL,
) -> tuple[DetectorState, str, StreamingFenceResult]:
    """Incremental transition: ``(state, buffer) -> (state', buffer', emission)``.

    At most one transition happens per step, so a chunk holding a whole
    fence needs two steps: one to enter the fence and one to close it.
    """
    if state is DetectorState.SCANNING:
        opener = find_opener(buffer, kind)
        if opener is None:
            prefix, tail = _split_safe_prefix(buffer, kind)
            return DetectorState.SCANNING, tail, StreamingFenceResult(prefix_text=prefix)

        return (
            DetectorState.IN_FENCE,
            buffer[opener[0]:],
            StreamingFenceResult(prefix_text=buffer[:opener[0]], in_fence=True),
        )

    # IN_FENCE: the buffer normally starts with the opener retained on entry
    opener = find_opener(buffer, kind)
    body_start = opener[1] if opener is not None and opener[0] == 0 else 0
    close = buffer.find(FENCE_DELIMITER, body_start)
    if close == -1:
        return DetectorState.IN_FENCE, buffer, StreamingFenceResult(in_fence=True)

    end = close + len(FENCE_DELIMITER)
    return DetectorState.SCANNING, buffer[end:], StreamingFenceResult(complete_fence=buffer[:end])


class ToolCallFenceDetector:
    """Separates prose from fenced payloads in streamed model output.

    A detector belongs to exactly one generation turn. It holds only a string
    buffer and a mode; every transition is delegated to the pure functions
    :func:`scan_buffer` and :func:`step_streaming`.

    Example:
        detector = ToolCallFenceDetector()
        detector.add_chunk('Sure. ```tool_call\\n{"name": "ping"}')
        detector.add_chunk('\\n```')
        result = detector.detect_fence()
        # result.prefix_text == "Sure. ", result.fence == '```tool_call\\n{"name": "ping"}\\n```'
    """

    def __init__(self, kind: FenceKind = FenceKind.CALL):
        """Initialize an empty detector.

        Args:
            kind: Which fence tag to look for.
        """
        self.kind = kind
        self._buffer = ""
        self._state = DetectorState.SCANNING

    @property
    def state(self) -> DetectorState:
        """Current streaming mode."""
        return self._state

    def add_chunk(self, text: str) -> None:
        """Append a chunk to the buffer without classifying it."""
        if text:
            self._buffer += text

    def detect_fence(self) -> FenceDetectionResult:
        """Scan the buffer for the first complete fence (batch mode)."""
        self._buffer, result = scan_buffer(self._buffer, self.kind)
        return result

    def detect_streaming_fence(self) -> StreamingFenceResult:
        """Advance the streaming state machine by one step."""
        self._state, self._buffer, result = step_streaming(self._state, self._buffer, self.kind)
        return result

    def is_in_fence(self) -> bool:
        """Whether the detector is collecting a fence payload."""
        return self._state is DetectorState.IN_FENCE

    def has_content(self) -> bool:
        """Whether any text is buffered."""
        return len(self._buffer) > 0

    def get_buffer_size(self) -> int:
        """Number of buffered characters."""
        return len(self._buffer)

    def get_buffer(self) -> str:
        """Buffered text not yet emitted."""
        return self._buffer

    def clear_buffer(self) -> None:
        """Drop all buffered text."""
        self._buffer = ""

    def reset_streaming_state(self) -> None:
        """Return to SCANNING mode."""
        self._state = DetectorState.SCANNING

    def flush(self) -> str:
        """Release the buffer as plain text and reset the detector.

        Used at the end of a turn; an unterminated fence comes back as prose.
        """
        remaining = self._buffer
        self._buffer = ""
        self._state = DetectorState.SCANNING
        return remaining

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(state={self._state.name}, buffered={len(self._buffer)})"
