"""Render a generic conversation into DeepSeek wire messages."""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any, Sequence

from deepseek_bridge.reasoning_cache import ReasoningCache
from deepseek_bridge.types import (
    ChatMessage,
    ChatRole,
    TextPart,
    ToolCallPart,
    ToolResultPart,
    ToolSpec,
    WireMessage,
    WireToolCall,
)

_logger = logging.getLogger(__name__)


def map_role(role: Any) -> str:
    """Map a generic role to the wire role.  Anything unknown is ``user``."""
    if role is ChatRole.ASSISTANT:
        return "assistant"
    if role is ChatRole.USER:
        return "user"
    _logger.debug("Unrecognized role %r, sending as user", role)
    return "user"


def _jsonable(item: Any) -> Any:
    if dataclasses.is_dataclass(item) and not isinstance(item, type):
        return dataclasses.asdict(item)
    return item


def tool_result_text(part: ToolResultPart) -> str:
    """Concatenated text of a tool result, else its raw content as JSON."""
    text = "".join(item.value for item in part.content if isinstance(item, TextPart))
    if text:
        return text
    return json.dumps([_jsonable(item) for item in part.content], default=str)


def to_wire_messages(
    messages: Sequence[ChatMessage],
    reasoning_capable: bool,
    cache: ReasoningCache | None = None,
) -> list[WireMessage]:
    """Convert *messages* into the flat wire message list.

    Each turn yields at most one ``user``/``assistant`` message followed
    by one ``tool`` message per tool-result part it carries, in order.
    For reasoning-capable targets every assistant message carries a
    ``reasoning_content`` field, filled from *cache* by tool-call id.
    """
    result: list[WireMessage] = []

    for message in messages:
        role = map_role(message.role)

        content = ""
        tool_calls: list[WireToolCall] = []
        tool_results: list[WireMessage] = []

        for part in message.content:
            if isinstance(part, TextPart):
                content += part.value
            elif isinstance(part, ToolCallPart):
                tool_calls.append(
                    WireToolCall(
                        id=part.call_id,
                        name=part.name,
                        arguments=json.dumps(part.input, ensure_ascii=False),
                    )
                )
            elif isinstance(part, ToolResultPart):
                tool_results.append(
                    WireMessage(
                        role="tool",
                        content=tool_result_text(part),
                        tool_call_id=part.call_id,
                    )
                )
            else:
                _logger.debug("Skipping unsupported content part %r", type(part))

        if role == "assistant":
            wire = WireMessage(role="assistant", content=content)
            if tool_calls:
                wire.tool_calls = tool_calls
            if reasoning_capable:
                wire.reasoning_content = _cached_reasoning(tool_calls, cache) or ""
            result.append(wire)
        elif content:
            result.append(WireMessage(role=role, content=content))

        result.extend(tool_results)

    return result


def _cached_reasoning(
    tool_calls: list[WireToolCall],
    cache: ReasoningCache | None,
) -> str | None:
    if cache is None:
        return None
    for tc in tool_calls:
        cached = cache.get(tc.id)
        if cached:
            return cached
    return None


def convert_tools(tools: Sequence[ToolSpec] | None) -> list[dict[str, Any]] | None:
    """Tool schemas for the request, or None when there are none."""
    if not tools:
        return None

    result: list[dict[str, Any]] = []
    for tool in tools:
        function: dict[str, Any] = {"name": tool.name}
        if tool.description is not None:
            function["description"] = tool.description
        if tool.input_schema is not None:
            function["parameters"] = tool.input_schema
        result.append({"type": "function", "function": function})
    return result
