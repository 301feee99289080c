"""Tests for system prompt construction."""

import json

import pytest

from fenced_tools.models import ToolDefinition
from fenced_tools.prompt import (
    PARALLEL_INSTRUCTION,
    SEQUENTIAL_INSTRUCTION,
    build_tool_system_prompt,
    prepend_system_prompt_to_messages,
)


@pytest.fixture
def weather_tool():
    """A tool with description and schema."""
    return ToolDefinition(
        name="get_weather",
        description="Get the current weather",
        input_schema={
            "type": "object",
            "properties": {"city": {"type": "string"}},
            "required": ["city"],
        },
    )


class TestBuildToolSystemPrompt:
    """Tests for build_tool_system_prompt."""

    @pytest.mark.parametrize("tools", [None, []])
    def test_no_tools_returns_original(self, tools):
        """Test the original prompt passes through without tools."""
        assert build_tool_system_prompt("Be concise.", tools) == "Be concise."
        assert build_tool_system_prompt("  padded  ", tools) == "  padded  "

    @pytest.mark.parametrize("original", [None, "", "   \n"])
    def test_no_tools_blank_original(self, original):
        """Test a missing or blank prompt collapses to empty."""
        assert build_tool_system_prompt(original, []) == ""

    def test_sections_present(self, weather_tool):
        """Test all protocol sections are rendered."""
        prompt = build_tool_system_prompt(None, [weather_tool])

        assert prompt.startswith("You are a helpful AI assistant with access to tools.")
        assert "# Available Tools" in prompt
        assert "# Tool Calling Instructions" in prompt
        assert "```tool_call" in prompt
        assert "```tool_result" in prompt
        assert "Important:" in prompt

    def test_tool_schema_rendered(self, weather_tool):
        """Test the tool list is rendered as JSON."""
        prompt = build_tool_system_prompt(None, [weather_tool])
        expected = json.dumps([weather_tool.to_prompt_entry()], indent=2)

        assert expected in prompt

    def test_defaults_for_bare_tool(self):
        """Test description and parameters defaults."""
        prompt = build_tool_system_prompt(None, [ToolDefinition(name="ping")])

        assert "No description provided." in prompt
        assert '"properties": {}' in prompt

    def test_original_prompt_prepended(self, weather_tool):
        """Test the caller's prompt comes first, trimmed."""
        prompt = build_tool_system_prompt("  You are a pirate.  ", [weather_tool])
        assert prompt.startswith("You are a pirate.\n\nYou are a helpful AI assistant with access to tools.")

    def test_tool_order_preserved(self):
        """Test tools are listed in the given order."""
        prompt = build_tool_system_prompt(None, [ToolDefinition(name="zeta"), ToolDefinition(name="alpha")])
        assert prompt.index('"zeta"') < prompt.index('"alpha"')

    def test_sequential_by_default(self, weather_tool):
        """Test one-call-at-a-time instructions."""
        prompt = build_tool_system_prompt(None, [weather_tool])

        assert SEQUENTIAL_INSTRUCTION in prompt
        assert PARALLEL_INSTRUCTION not in prompt
        assert "For multiple parallel calls:" not in prompt

    def test_parallel_instructions(self, weather_tool):
        """Test parallel calling instructions."""
        prompt = build_tool_system_prompt(None, [weather_tool], allow_parallel_tool_calls=True)

        assert PARALLEL_INSTRUCTION in prompt
        assert SEQUENTIAL_INSTRUCTION not in prompt
        assert "For multiple parallel calls:" in prompt
        assert '{"name": "tool1"' in prompt
        assert '{"name": "tool2"' in prompt

    def test_result_format_described(self, weather_tool):
        """Test the result fence example."""
        prompt = build_tool_system_prompt(None, [weather_tool])

        assert '"id": "call_123"' in prompt
        assert '"name": "tool_name"' in prompt
        assert '"error": false' in prompt
        assert "Use the `result` payload (and treat `error` as a boolean flag)" in prompt

    def test_openai_shaped_tools(self):
        """Test tools given as OpenAI dicts."""
        tool = {
            "type": "function",
            "function": {"name": "search", "description": "Search", "parameters": {"type": "object"}},
        }
        prompt = build_tool_system_prompt(None, [tool])

        assert '"name": "search"' in prompt
        assert '"description": "Search"' in prompt

    def test_deterministic(self, weather_tool):
        """Test identical inputs give identical prompts."""
        assert build_tool_system_prompt("x", [weather_tool]) == build_tool_system_prompt("x", [weather_tool])


class TestPrependSystemPrompt:
    """Tests for prepend_system_prompt_to_messages."""

    def test_string_content(self):
        """Test prompt is prefixed to the first user message."""
        messages = [
            {"role": "assistant", "content": "Hi"},
            {"role": "user", "content": "Weather?"},
            {"role": "user", "content": "Second"},
        ]
        result = prepend_system_prompt_to_messages(messages, "SYS")

        assert result[1]["content"] == "SYS\n\nWeather?"
        assert result[2]["content"] == "Second"

    def test_input_not_mutated(self):
        """Test the caller's messages are untouched."""
        messages = [{"role": "user", "content": "Hello"}]
        prepend_system_prompt_to_messages(messages, "SYS")

        assert messages == [{"role": "user", "content": "Hello"}]

    def test_list_content_with_text_part(self):
        """Test the first text part is prefixed."""
        image = {"type": "image_url", "image_url": {"url": "data:"}}
        messages = [{"role": "user", "content": [image, {"type": "text", "text": "Describe"}]}]
        result = prepend_system_prompt_to_messages(messages, "SYS")

        assert result[0]["content"][0] == image
        assert result[0]["content"][1] == {"type": "text", "text": "SYS\n\nDescribe"}
        assert messages[0]["content"][1]["text"] == "Describe"

    def test_list_content_without_text_part(self):
        """Test a text part is inserted when none exists."""
        image = {"type": "image_url", "image_url": {"url": "data:"}}
        result = prepend_system_prompt_to_messages([{"role": "user", "content": [image]}], "SYS")

        assert result[0]["content"] == [{"type": "text", "text": "SYS\n\n"}, image]

    def test_no_user_message(self):
        """Test a user message is created when missing."""
        result = prepend_system_prompt_to_messages([{"role": "assistant", "content": "Hi"}], "SYS")

        assert result[0] == {"role": "user", "content": "SYS"}
        assert len(result) == 2

    def test_blank_prompt(self):
        """Test blank prompts change nothing."""
        messages = [{"role": "user", "content": "Hello"}]
        assert prepend_system_prompt_to_messages(messages, "  ") == messages
