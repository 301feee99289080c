"""System prompt construction for fenced tool calling.

Backends without native tool calling learn the protocol from the system
prompt: the tool schemas, the ```tool_call fence the model must emit, and the
```tool_result fence it will read results from.
"""

import json
from typing import Any, Iterable, Mapping, Sequence

from fenced_tools.models import ToolDefinition

SEQUENTIAL_INSTRUCTION = (
    "Only request one tool call at a time. "
    "Wait for tool results before asking for another tool."
)

PARALLEL_INSTRUCTION = (
    "You may return multiple tool calls in the array if they are independent "
    "and can be executed in parallel. If a call depends on the output of "
    "another, wait for that tool result first."
)

_SINGLE_CALL_FORMAT = """To call a tool, output JSON in this exact format inside a ```tool_call code fence:

```tool_call
{"name": "tool_name", "arguments": {"param1": "value1", "param2": "value2"}}
```"""

_PARALLEL_CALL_FORMAT = """To call a tool, output JSON in this exact format inside a ```tool_call code fence:

```tool_call
[{"name": "tool_name", "arguments": {"param1": "value1", "param2": "value2"}}]
```

For multiple parallel calls:
```tool_call
[{"name": "tool1", "arguments": {"param": "value"}}, {"name": "tool2", "arguments": {"param": "value"}}]
```"""

_RESULT_FORMAT = """Tool responses will be provided in ```tool_result fences. Each line contains JSON like:
```tool_result
{"id": "call_123", "name": "tool_name", "result": {...}, "error": false}
```
Use the `result` payload (and treat `error` as a boolean flag) when continuing the conversation."""

_GUIDELINES = """Important:
- Use exact tool and parameter names from the schema above
- Arguments must be a valid JSON object matching the tool's parameters
- You can include brief reasoning before or after the tool call
- If no tool is needed, respond directly without tool_call fences"""


def _as_definition(tool: ToolDefinition | Mapping[str, Any]) -> ToolDefinition:
    if isinstance(tool, ToolDefinition):
        return tool
    return ToolDefinition.from_openai_format(dict(tool))


def build_tool_system_prompt(
    original_system_prompt: str | None,
    tools: Sequence[ToolDefinition | Mapping[str, Any]] | None,
    *,
    allow_parallel_tool_calls: bool = False,
) -> str:
    """Build the system prompt that teaches a model the fence protocol.

    Args:
        original_system_prompt: The caller's system prompt, if any.
        tools: Tool declarations, as models or dicts (flat or OpenAI shape).
            Their order is preserved in the prompt.
        allow_parallel_tool_calls: Allow several independent calls in one fence.

    Returns:
        The augmented prompt. With no tools, the original prompt is returned
        unchanged, or an empty string when it is missing or blank.
    """
    if not tools:
        if original_system_prompt is None or not original_system_prompt.strip():
            return ""
        return original_system_prompt

    definitions = [_as_definition(tool) for tool in tools]
    tools_json = json.dumps([d.to_prompt_entry() for d in definitions], indent=2, ensure_ascii=False)

    if allow_parallel_tool_calls:
        calling_instruction = PARALLEL_INSTRUCTION
        call_format = _PARALLEL_CALL_FORMAT
    else:
        calling_instruction = SEQUENTIAL_INSTRUCTION
        call_format = _SINGLE_CALL_FORMAT

    instruction_body = "\n\n".join([
        "You are a helpful AI assistant with access to tools.",
        f"# Available Tools\n{tools_json}",
        f"# Tool Calling Instructions\n{calling_instruction}",
        call_format,
        _RESULT_FORMAT,
        _GUIDELINES,
    ])

    if original_system_prompt and original_system_prompt.strip():
        return f"{original_system_prompt.strip()}\n\n{instruction_body}"

    return instruction_body


def prepend_system_prompt_to_messages(
    messages: Iterable[Mapping[str, Any]],
    system_prompt: str,
) -> list[dict[str, Any]]:
    """Inject a system prompt into the first user message.

    For backends that accept no system role. The input messages are not
    mutated; a new list of shallow-copied messages is returned.

    Args:
        messages: Chat messages with ``role`` and ``content`` keys. Content is
            a string or a list of parts such as ``{"type": "text", "text": ...}``.
        system_prompt: Prompt to inject. Blank prompts leave messages as they are.

    Returns:
        The updated message list.
    """
    prompts = [dict(message) for message in messages]
    if not system_prompt.strip():
        return prompts

    first_user = next((i for i, m in enumerate(prompts) if m.get("role") == "user"), None)
    if first_user is None:
        prompts.insert(0, {"role": "user", "content": system_prompt})
        return prompts

    message = prompts[first_user]
    content = message.get("content")

    if isinstance(content, str):
        message["content"] = f"{system_prompt}\n\n{content}"
    elif isinstance(content, list):
        parts = [dict(part) if isinstance(part, Mapping) else part for part in content]
        text_index = next(
            (i for i, part in enumerate(parts) if isinstance(part, dict) and part.get("type") == "text"),
            None,
        )
        if text_index is not None and parts[text_index].get("text"):
            parts[text_index]["text"] = f"{system_prompt}\n\n{parts[text_index]['text']}"
        else:
            parts.insert(0, {"type": "text", "text": f"{system_prompt}\n\n"})
        message["content"] = parts
    else:
        message["content"] = system_prompt

    return prompts
