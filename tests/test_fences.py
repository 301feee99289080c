"""Tests for fence markers and scanning."""

import pytest

from fenced_tools.fences import (
    FenceKind,
    extract_fence,
    fence_inner_text,
    find_fence,
    find_opener,
    iter_fences,
    marker_length,
    partial_marker_overlap,
)


class TestMarkers:
    """Tests for marker constants."""

    def test_opening_markers(self):
        """Test canonical opening markers."""
        assert FenceKind.CALL.opening_marker == "```tool_call"
        assert FenceKind.RESULT.opening_marker == "```tool_result"

    def test_marker_length(self):
        """Test longest accepted opener lengths."""
        assert marker_length(FenceKind.CALL) == 12
        assert marker_length(FenceKind.RESULT) == 14


class TestFindOpener:
    """Tests for find_opener."""

    @pytest.mark.parametrize("marker", ["```tool_call", "```tool-call", "```toolcall", "```TOOL_CALL"])
    def test_variants(self, marker):
        """Test every accepted spelling."""
        assert find_opener(f"ab {marker}") == (3, 3 + len(marker))

    def test_start_cursor(self):
        """Test search starts at the cursor."""
        text = "```tool_call x ```tool_call"
        assert find_opener(text, start=1) == (15, 27)

    def test_plain_code_fence_not_an_opener(self):
        """Test other fences are ignored."""
        assert find_opener("```python\nx\n```") is None

    def test_result_kind(self):
        """Test result openers are separate from call openers."""
        assert find_opener("```tool_result", FenceKind.CALL) is None
        assert find_opener("```tool_result", FenceKind.RESULT) == (0, 14)


class TestFindFence:
    """Tests for find_fence and iter_fences."""

    def test_span(self):
        """Test span boundaries."""
        text = 'x ```tool_call\n{"a": 1}\n``` y'
        span = find_fence(text)

        assert span.block(text) == '```tool_call\n{"a": 1}\n```'
        assert span.inner(text) == '{"a": 1}'
        assert text[span.end:] == " y"

    def test_unclosed(self):
        """Test an opener without closer is not a fence."""
        assert find_fence("```tool_call\n{") is None

    def test_closes_at_first_delimiter(self):
        """Test the fence ends at the first delimiter after the opener."""
        text = "```tool_call\na\n```\nb\n```"
        assert find_fence(text).block(text) == "```tool_call\na\n```"

    def test_iter_fences(self):
        """Test all fences are yielded in order."""
        text = "```tool_call\n1\n``` and ```tool_call\n2\n``` and ```tool_call\n3"
        assert [span.inner(text) for span in iter_fences(text)] == ["1", "2"]


class TestPartialMarkerOverlap:
    """Tests for partial_marker_overlap."""

    @pytest.mark.parametrize("text,expected", [
        ("hello", 0),
        ("hello `", 1),
        ("hello ``", 2),
        ("hello ```", 3),
        ("x```tool_c", 9),
        ("x```toolc", 8),
        ("x```TOOL-CA", 10),
        ("```tool_cal", 11),
        ("```tool_call", 0),
        ("```python", 0),
        ("", 0),
    ])
    def test_overlap(self, text, expected):
        """Test suffix lengths that could start an opener."""
        assert partial_marker_overlap(text) == expected

    def test_bounded_by_marker_length(self):
        """Test overlap never reaches a full marker."""
        text = "a" * 50 + "```tool_cal"
        assert partial_marker_overlap(text) <= marker_length() - 1


class TestExtraction:
    """Tests for extract_fence and fence_inner_text."""

    def test_extract_fence(self):
        """Test first fence extraction."""
        text = "a ```tool_call\n{}\n``` b"
        assert extract_fence(text) == "```tool_call\n{}\n```"
        assert extract_fence("nothing here") is None

    def test_fence_inner_text(self):
        """Test delimiters are stripped."""
        assert fence_inner_text('```tool_call\n{"a": 1}\n```') == '{"a": 1}'
        assert fence_inner_text("```tool-call {}```") == "{}"

    def test_fence_inner_text_without_delimiters(self):
        """Test plain text is only trimmed."""
        assert fence_inner_text("  plain  ") == "plain"

    def test_result_fence_inner_text(self):
        """Test result fences."""
        assert fence_inner_text("```tool_result\nline\n```", FenceKind.RESULT) == "line"
