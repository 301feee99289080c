"""Chat client running fenced tool calling against text-only backends.

Works with any OpenAI-compatible server (vLLM, Ollama, LM Studio, llama.cpp)
serving a model that has no native tool calling. Tools are described in the
system prompt, calls are recovered from the streamed text, and results are
sent back as ```tool_result fences.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Mapping, Sequence

from openai import OpenAI

from fenced_tools.config import ToolCallingSettings
from fenced_tools.exceptions import ToolExecutionError
from fenced_tools.formatter import format_tool_results
from fenced_tools.logger import get_logger
from fenced_tools.models import ParsedResponse, ParsedToolCall, ToolDefinition, ToolResult
from fenced_tools.prompt import build_tool_system_prompt, prepend_system_prompt_to_messages
from fenced_tools.streaming import StreamEvent, ToolCallStream

logger = get_logger(__name__)

ToolExecutor = Callable[[ParsedToolCall], Any]


@dataclass
class LLMConfig:
    """Configuration for the server connection.

    Attributes:
        base_url: OpenAI-compatible endpoint.
        api_key: API key, "EMPTY" for local servers.
        model: Model name; auto-detected from the server when None.
        supports_system_role: When False the system prompt is injected into
            the first user message instead.
    """
    base_url: str = "http://localhost:8000/v1"
    api_key: str = "EMPTY"
    model: str | None = None
    supports_system_role: bool = True

    @classmethod
    def vllm_local(cls) -> "LLMConfig":
        """Config for a local vLLM server."""
        return cls(base_url="http://localhost:8000/v1", api_key="EMPTY")

    @classmethod
    def ollama_local(cls, model: str | None = None) -> "LLMConfig":
        """Config for a local Ollama server."""
        return cls(base_url="http://localhost:11434/v1", api_key="ollama", model=model)

    @classmethod
    def lm_studio_local(cls, model: str | None = None) -> "LLMConfig":
        """Config for a local LM Studio server."""
        return cls(base_url="http://localhost:1234/v1", api_key="lm-studio", model=model)


@dataclass
class ChatTurn:
    """Outcome of a tool calling conversation.

    Attributes:
        content: Prose of the final assistant turn.
        tool_calls: Every call the model made, across rounds.
        tool_results: Every result sent back, across rounds.
        rounds: Number of model generations performed.
        messages: Full conversation history, including the augmented prompt.
    """
    content: str
    tool_calls: list[ParsedToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)
    rounds: int = 0
    messages: list[dict[str, Any]] = field(default_factory=list)


class FencedToolClient:
    """Client that gives tool calling to models that only produce text.

    Example:
        client = FencedToolClient(LLMConfig.ollama_local("llama3.2"))
        turn = client.chat(
            [{"role": "user", "content": "Weather in Paris?"}],
            tools=[ToolDefinition(name="get_weather", input_schema={...})],
            executor=lambda call: {"temp": 21},
        )
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        settings: ToolCallingSettings | None = None,
        client: OpenAI | None = None,
    ):
        self.config = config or LLMConfig.vllm_local()
        self.settings = settings or ToolCallingSettings()
        self.client = client or OpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
        )
        self._model = self.config.model

    @property
    def model(self) -> str:
        """Get the model name, auto-detecting if needed."""
        if self._model is None:
            models = self.client.models.list()
            self._model = models.data[0].id
        return self._model

    def build_messages(
        self,
        messages: Sequence[Mapping[str, Any]],
        tools: Sequence[ToolDefinition | Mapping[str, Any]],
    ) -> list[dict[str, Any]]:
        """Replace system messages with the augmented tool prompt.

        System message texts are merged into the original prompt. The prompt
        goes into a leading system message, or into the first user message
        when the server has no system role.
        """
        system_parts = [
            m["content"] for m in messages
            if m.get("role") == "system" and isinstance(m.get("content"), str)
        ]
        conversation = [dict(m) for m in messages if m.get("role") != "system"]

        original = "\n\n".join(system_parts) if system_parts else None
        system_prompt = build_tool_system_prompt(
            original,
            tools,
            allow_parallel_tool_calls=self.settings.allow_parallel_tool_calls,
        )

        if not system_prompt:
            return conversation
        if self.config.supports_system_role:
            return [{"role": "system", "content": system_prompt}, *conversation]
        return prepend_system_prompt_to_messages(conversation, system_prompt)

    def stream_turn(
        self,
        messages: Sequence[Mapping[str, Any]],
        max_tokens: int = 1024,
    ) -> Iterator[StreamEvent]:
        """Stream one generation as text and tool call events.

        ``messages`` should already hold the augmented prompt (see
        :meth:`build_messages`).
        """
        stream = ToolCallStream(parser=self.settings.make_parser())
        for delta in self._iter_deltas(messages, max_tokens):
            yield from stream.feed(delta)
        yield from stream.finish()

    def execute_calls(self, calls: Sequence[ParsedToolCall], executor: ToolExecutor) -> list[ToolResult]:
        """Run each call through the executor.

        A failing executor yields an error result instead of aborting the turn.
        """
        results: list[ToolResult] = []
        for call in calls:
            try:
                value = executor(call)
            except Exception as e:
                error = ToolExecutionError(call.tool_name, e)
                logger.warning("%s", error)
                results.append(ToolResult(
                    tool_call_id=call.tool_call_id,
                    tool_name=call.tool_name,
                    result={"error": str(e)},
                    is_error=True,
                ))
                continue

            results.append(ToolResult(
                tool_call_id=call.tool_call_id,
                tool_name=call.tool_name,
                result=value,
                is_error=False,
            ))
        return results

    def chat(
        self,
        messages: Sequence[Mapping[str, Any]],
        tools: Sequence[ToolDefinition | Mapping[str, Any]],
        executor: ToolExecutor,
        max_rounds: int = 5,
        max_tokens: int = 1024,
    ) -> ChatTurn:
        """Run the prompt, parse, execute and resume loop.

        Args:
            messages: Conversation so far.
            tools: Tools the model may call.
            executor: Called with each parsed call; its return value is the result.
            max_rounds: Maximum number of generations.
            max_tokens: Token limit per generation.

        Returns:
            ChatTurn with the final prose and every call and result.
        """
        history = self.build_messages(messages, tools)
        turn = ChatTurn(content="", messages=history)

        for round_number in range(1, max_rounds + 1):
            raw_text, parsed = self._run_turn(history, max_tokens)
            turn.rounds = round_number
            turn.content = parsed.text_content
            history.append({"role": "assistant", "content": raw_text})

            if not parsed.has_calls:
                logger.info("Round %d finished without tool calls", round_number)
                return turn

            logger.info("Round %d requested tools: %s", round_number, ", ".join(parsed.get_call_names()))
            results = self.execute_calls(parsed.tool_calls, executor)
            turn.tool_calls.extend(parsed.tool_calls)
            turn.tool_results.extend(results)
            history.append({"role": "user", "content": format_tool_results(results)})

        logger.warning("Stopped after %d rounds with tool calls still pending", max_rounds)
        return turn

    def _run_turn(self, messages: Sequence[Mapping[str, Any]], max_tokens: int) -> tuple[str, ParsedResponse]:
        """Generate once; return the raw text and the parsed turn."""
        stream = ToolCallStream(parser=self.settings.make_parser())
        raw_parts: list[str] = []

        for delta in self._iter_deltas(messages, max_tokens):
            raw_parts.append(delta)
            stream.feed(delta)
        stream.finish()

        return "".join(raw_parts), stream.result()

    def _iter_deltas(self, messages: Sequence[Mapping[str, Any]], max_tokens: int) -> Iterator[str]:
        """Yield the text deltas of a streamed chat completion."""
        response = self.client.chat.completions.create(
            model=self.model,
            messages=list(messages),
            max_tokens=max_tokens,
            stream=True,
        )

        for chunk in response:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content
