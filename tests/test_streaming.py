"""Tests for the per-turn streaming session."""

import pytest

from fenced_tools.parsers import ToolCallGrammar
from fenced_tools.streaming import (
    TextDelta,
    ToolCallEvent,
    ToolCallStream,
    iter_stream_events,
)

TURN = (
    "Let me look that up. "
    '```tool_call\n{"name": "get_weather", "arguments": {"city": "Paris"}}\n```'
    " One moment."
)


def chunked(text: str, size: int) -> list[str]:
    """Split text into fixed-size chunks."""
    return [text[i:i + size] for i in range(0, len(text), size)]


def collect(chunks: list[str], grammar=ToolCallGrammar.JSON) -> list:
    """Run a whole turn and return its events."""
    return list(iter_stream_events(chunks, grammar))


def text_of(events: list) -> str:
    """Concatenate the text events."""
    return "".join(e.text for e in events if isinstance(e, TextDelta))


class TestStreamingSession:
    """Tests for ToolCallStream."""

    def test_whole_turn_in_one_chunk(self):
        """Test events for a turn delivered at once."""
        events = collect([TURN])

        assert isinstance(events[0], TextDelta)
        assert events[0].text == "Let me look that up. "
        assert isinstance(events[1], ToolCallEvent)
        assert events[1].call.tool_name == "get_weather"
        assert events[1].call.args == {"city": "Paris"}
        assert text_of(events[2:]) == " One moment."

    @pytest.mark.parametrize("size", [1, 2, 3, 4, 7, 11, 16])
    def test_chunk_size_does_not_change_result(self, size):
        """Test every chunking yields the same calls and prose."""
        events = collect(chunked(TURN, size))
        calls = [e.call for e in events if isinstance(e, ToolCallEvent)]

        assert [c.tool_name for c in calls] == ["get_weather"]
        assert text_of(events) == "Let me look that up.  One moment."

    def test_text_released_before_fence_closes(self):
        """Test prose is emitted before the fence completes."""
        stream = ToolCallStream()

        events = stream.feed('Checking ```tool_call\n{"name": "a"')
        assert [e.text for e in events if isinstance(e, TextDelta)] == ["Checking "]
        assert not any(isinstance(e, ToolCallEvent) for e in events)

        events = stream.feed("}\n```")
        assert [e.call.tool_name for e in events if isinstance(e, ToolCallEvent)] == ["a"]

    def test_partial_marker_held_back(self):
        """Test possible marker starts are not emitted early."""
        stream = ToolCallStream()

        events = stream.feed("Sure ``")
        assert text_of(events) == "Sure "

        events = stream.feed("` code")
        assert text_of(events) == "``` code"

    def test_fence_event_carries_block(self):
        """Test call events reference their fence."""
        fence = '```tool_call\n[{"name": "a"}, {"name": "b"}]\n```'
        events = collect([fence])

        assert [e.call.tool_name for e in events] == ["a", "b"]
        assert all(e.fence == fence for e in events)

    def test_invalid_fence_released_as_text(self):
        """Test a fence with no valid calls comes back as prose."""
        fence = "```tool_call\nnot json at all\n```"
        events = collect(["Hmm ", fence, " ok"])

        assert not any(isinstance(e, ToolCallEvent) for e in events)
        assert text_of(events) == f"Hmm {fence} ok"

    def test_unterminated_fence_flushed_on_finish(self):
        """Test a fence cut off by the end of the stream becomes text."""
        stream = ToolCallStream()
        stream.feed('Wait ```tool_call\n{"name": "a"')

        events = stream.finish()

        assert events == [TextDelta(text='```tool_call\n{"name": "a"')]
        assert stream.tool_calls == []

    def test_result_summary(self):
        """Test the aggregated response."""
        stream = ToolCallStream()
        for chunk in chunked(TURN + "\n\n\nDone.", 5):
            stream.feed(chunk)
        stream.finish()

        result = stream.result()
        assert result.get_call_names() == ["get_weather"]
        assert result.text_content == "Let me look that up.  One moment.\nDone."

    def test_feed_after_finish_raises(self):
        """Test a finished stream rejects input."""
        stream = ToolCallStream()
        stream.finish()

        assert stream.finished
        with pytest.raises(RuntimeError):
            stream.feed("more")

    def test_finish_twice(self):
        """Test the second finish is a no-op."""
        stream = ToolCallStream()
        stream.feed("abc `")

        assert stream.finish() == [TextDelta(text="`")]
        assert stream.finish() == []

    def test_independent_sessions(self):
        """Test concurrent sessions do not share state."""
        first = ToolCallStream()
        second = ToolCallStream()

        first.feed("```tool_call\n")
        second.feed("plain")

        assert first.detector.is_in_fence()
        assert not second.detector.is_in_fence()


class TestExtendedStreaming:
    """Tests for tag and literal recovery in streams."""

    def test_tag_recovered_on_finish(self):
        """Test tag calls surface when the turn ends."""
        stream = ToolCallStream(grammar="extended")
        events = []
        for chunk in chunked('Ok <tool_call>{"name": "a", "arguments": {"x": 1}}</tool_call>', 4):
            events.extend(stream.feed(chunk))

        assert not any(isinstance(e, ToolCallEvent) for e in events)

        final = stream.finish()
        calls = [e for e in final if isinstance(e, ToolCallEvent)]
        assert [e.call.tool_name for e in calls] == ["a"]
        assert calls[0].fence.startswith("<tool_call>")

        result = stream.result()
        assert result.get_call_names() == ["a"]
        assert result.text_content == "Ok"

    def test_literal_recovered_on_finish(self):
        """Test call literals surface when the turn ends."""
        events = collect(["Calling [lookup(id=", "7)] now"], ToolCallGrammar.EXTENDED)
        calls = [e.call for e in events if isinstance(e, ToolCallEvent)]

        assert [(c.tool_name, c.args) for c in calls] == [("lookup", {"id": "7"})]

    def test_fences_still_stream(self):
        """Test fences are parsed incrementally under the extended grammar."""
        stream = ToolCallStream(grammar=ToolCallGrammar.EXTENDED)
        events = stream.feed('```tool_call\n{"name": "a"}\n```')

        assert [e.call.tool_name for e in events if isinstance(e, ToolCallEvent)] == ["a"]
        assert stream.finish() == []
