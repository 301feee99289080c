"""Streaming fence detection."""

from .detector import (
    DetectorState,
    FenceDetectionResult,
    StreamingFenceResult,
    ToolCallFenceDetector,
    scan_buffer,
    step_streaming,
)
from .session import StreamEvent, TextDelta, ToolCallEvent, ToolCallStream, iter_stream_events

__all__ = [
    "DetectorState",
    "FenceDetectionResult",
    "StreamingFenceResult",
    "ToolCallFenceDetector",
    "scan_buffer",
    "step_streaming",
    "StreamEvent",
    "TextDelta",
    "ToolCallEvent",
    "ToolCallStream",
    "iter_stream_events",
]
