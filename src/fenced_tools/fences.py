"""Fence markers and cursor-based fence scanning.

A fence is a code-fence block tagged with a semantic marker::

    ```tool_call
    {"name": "get_weather", "arguments": {"city": "Paris"}}
    ```

Every function here is pure: scanning starts from an explicit cursor and no
compiled matcher carries position state between calls, so detectors for
concurrent turns never interfere with each other.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

FENCE_DELIMITER = "```"


class FenceKind(Enum):
    """Semantic tag of a fence."""
    CALL = "tool_call"
    RESULT = "tool_result"

    @property
    def opening_marker(self) -> str:
        """Canonical opening token written by the prompt and the formatter."""
        return f"{FENCE_DELIMITER}{self.value}"


# Spellings accepted for each opener; matching is case-insensitive.
_OPENER_VARIANTS: dict[FenceKind, tuple[str, ...]] = {
    FenceKind.CALL: ("```tool_call", "```tool-call", "```toolcall"),
    FenceKind.RESULT: ("```tool_result", "```tool-result", "```toolresult"),
}

_OPENER_PATTERNS: dict[FenceKind, re.Pattern[str]] = {
    FenceKind.CALL: re.compile(r"```tool[_-]?call", re.IGNORECASE),
    FenceKind.RESULT: re.compile(r"```tool[_-]?result", re.IGNORECASE),
}


@dataclass(frozen=True)
class FenceSpan:
    """Location of one complete fence inside a text.

    Attributes:
        start: Index of the opening marker.
        inner_start: Index right after the opening marker.
        inner_end: Index of the closing delimiter.
        end: Index right after the closing delimiter.
    """
    start: int
    inner_start: int
    inner_end: int
    end: int

    def block(self, text: str) -> str:
        """Full fence text, delimiters included."""
        return text[self.start:self.end]

    def inner(self, text: str) -> str:
        """Payload between the delimiters, whitespace-trimmed."""
        return text[self.inner_start:self.inner_end].strip()


def marker_length(kind: FenceKind = FenceKind.CALL) -> int:
    """Length of the longest accepted opening marker."""
    return max(len(variant) for variant in _OPENER_VARIANTS[kind])


def find_opener(text: str, kind: FenceKind = FenceKind.CALL, start: int = 0) -> tuple[int, int] | None:
    """Find the first opening marker at or after ``start``.

    Returns:
        ``(marker_start, marker_end)`` or None.
    """
    match = _OPENER_PATTERNS[kind].search(text, start)
    if match is None:
        return None
    return match.start(), match.end()


def find_fence(text: str, kind: FenceKind = FenceKind.CALL, start: int = 0) -> FenceSpan | None:
    """Find the first complete fence at or after ``start``.

    The fence closes at the first delimiter following the opening marker.
    """
    opener = find_opener(text, kind, start)
    if opener is None:
        return None

    open_start, open_end = opener
    close = text.find(FENCE_DELIMITER, open_end)
    if close == -1:
        return None

    return FenceSpan(
        start=open_start,
        inner_start=open_end,
        inner_end=close,
        end=close + len(FENCE_DELIMITER),
    )


def iter_fences(text: str, kind: FenceKind = FenceKind.CALL) -> Iterator[FenceSpan]:
    """Yield every complete, non-overlapping fence in order of appearance."""
    cursor = 0
    while cursor < len(text):
        span = find_fence(text, kind, cursor)
        if span is None:
            return
        yield span
        cursor = span.end


def partial_marker_overlap(text: str, kind: FenceKind = FenceKind.CALL) -> int:
    """Length of the longest suffix of ``text`` that could begin an opener.

    The result never exceeds ``marker_length(kind) - 1``; a complete opener is
    found by :func:`find_opener` instead.
    """
    variants = _OPENER_VARIANTS[kind]
    longest = min(len(text), marker_length(kind) - 1)

    for length in range(longest, 0, -1):
        tail = text[-length:].lower()
        if any(variant.startswith(tail) and variant != tail for variant in variants):
            return length

    return 0


def extract_fence(text: str, kind: FenceKind = FenceKind.CALL) -> str | None:
    """Return the first complete fence block (delimiters included), or None."""
    span = find_fence(text, kind)
    return span.block(text) if span else None


def fence_inner_text(block: str, kind: FenceKind = FenceKind.CALL) -> str:
    """Strip the delimiters from a fence block and trim the payload.

    Text without a leading opener or trailing delimiter is trimmed as is.
    """
    body = block.strip()
    match = _OPENER_PATTERNS[kind].match(body)
    if match:
        body = body[match.end():]
    if body.endswith(FENCE_DELIMITER):
        body = body[:-len(FENCE_DELIMITER)]
    return body.strip()
