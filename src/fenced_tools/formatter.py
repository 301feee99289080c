"""Serialization of tool results into ```tool_result fences.

Each result becomes one compact JSON line inside a single fence::

    ```tool_result
    {"id":"call_1","name":"get_weather","result":{"temp":21},"error":false}
    ```
"""

import json
from typing import Any, Iterable, Mapping

from pydantic_core import to_json

from fenced_tools.fences import FenceKind, find_fence
from fenced_tools.logger import get_logger
from fenced_tools.models import ToolResult

logger = get_logger(__name__)


def _coerce_result(item: ToolResult | Mapping[str, Any]) -> ToolResult:
    """Accept a ToolResult or a dict in the field shape or the wire shape.

    Dict records are normalized first: ids are stringified, a missing name
    becomes ``""`` and the error flag is read for truthiness.
    """
    if isinstance(item, ToolResult):
        return item

    call_id = item.get("tool_call_id", item.get("toolCallId", item.get("id")))
    name = item.get("tool_name", item.get("toolName", item.get("name")))
    is_error = item.get("is_error", item.get("isError", item.get("error", False)))

    return ToolResult(
        tool_call_id=str(call_id) if call_id is not None else None,
        tool_name=str(name) if name is not None else "",
        result=item.get("result"),
        is_error=bool(is_error),
    )


def _dump_line(payload: dict[str, Any]) -> str:
    """Compact JSON with non-finite floats written as null.

    Models, dataclasses, datetimes and sets go through pydantic's generic
    serialization; anything it cannot handle is rendered with ``str``.
    """
    try:
        return to_json(payload, fallback=str, inf_nan_mode="null").decode()
    except ValueError as e:
        logger.debug("Falling back to str() for tool result value: %s", e)
        payload = {**payload, "result": str(payload["result"])}
        return to_json(payload, inf_nan_mode="null").decode()


def format_result_line(result: ToolResult | Mapping[str, Any]) -> str:
    """Serialize one result as a compact single-line JSON object.

    Key order is ``id``, ``name``, ``result``, ``error``; ``id`` is left out
    when the result has no call identifier.
    """
    record = _coerce_result(result)

    payload: dict[str, Any] = {}
    if record.tool_call_id is not None:
        payload["id"] = record.tool_call_id
    payload["name"] = record.tool_name
    payload["result"] = record.result
    payload["error"] = bool(record.is_error)

    return _dump_line(payload)


def format_tool_results(results: Iterable[ToolResult | Mapping[str, Any]] | None) -> str:
    """Format tool results as a single ```tool_result fence.

    Args:
        results: Results to serialize, in order.

    Returns:
        The fence text, or an empty string when there are no results.
    """
    if not results:
        return ""

    lines = [format_result_line(result) for result in results]
    if not lines:
        return ""

    body = "\n".join(lines)
    return f"{FenceKind.RESULT.opening_marker}\n{body}\n```"


def format_single_tool_result(result: ToolResult | Mapping[str, Any]) -> str:
    """Format exactly one tool result as a one-line fence."""
    return format_tool_results([result])


def parse_tool_results(text: str) -> list[ToolResult]:
    """Read the first ```tool_result fence of a text back into records.

    Lines that are not JSON objects with a string ``name`` are skipped.
    """
    span = find_fence(text, FenceKind.RESULT)
    if span is None:
        return []

    results: list[ToolResult] = []
    for line in span.inner(text).split("\n"):
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line)
        except (ValueError, RecursionError):
            logger.debug("Skipping unparseable tool result line: %r", line[:200])
            continue

        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            continue

        call_id = data.get("id")
        results.append(ToolResult(
            tool_call_id=str(call_id) if call_id is not None else None,
            tool_name=data["name"],
            result=data.get("result"),
            is_error=bool(data.get("error", False)),
        ))

    return results
