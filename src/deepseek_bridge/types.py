"""Shared data types for deepseek-bridge."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Union


# ---------------------------------------------------------------------------
# Conversation types (caller-facing)
# ---------------------------------------------------------------------------

class ChatRole(enum.Enum):
    """Role of a generic conversation turn."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class TextPart:
    """Plain text content."""

    value: str


@dataclass(frozen=True)
class ToolCallPart:
    """A tool invocation made by the assistant."""

    call_id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultPart:
    """The result of a tool invocation, referencing the call by id.

    ``content`` holds ``TextPart`` items and/or arbitrary JSON-able values.
    """

    call_id: str
    content: list[Any] = field(default_factory=list)


ContentPart = Union[TextPart, ToolCallPart, ToolResultPart]


@dataclass
class ChatMessage:
    """One turn of a generic conversation."""

    role: ChatRole
    content: list[ContentPart] = field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> ChatMessage:
        return cls(role=ChatRole.USER, content=[TextPart(text)])

    @classmethod
    def assistant(cls, text: str) -> ChatMessage:
        return cls(role=ChatRole.ASSISTANT, content=[TextPart(text)])

    @property
    def text(self) -> str:
        return "".join(p.value for p in self.content if isinstance(p, TextPart))


@dataclass(frozen=True)
class ToolSpec:
    """A tool the model may call."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# Wire types (vendor-facing)
# ---------------------------------------------------------------------------

@dataclass
class WireToolCall:
    """A tool call as carried on an ``assistant`` wire message."""

    id: str
    name: str
    arguments: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass
class WireMessage:
    """Flat message in the vendor schema."""

    role: str  # system | user | assistant | tool
    content: str
    tool_calls: list[WireToolCall] | None = None
    tool_call_id: str | None = None
    reasoning_content: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.reasoning_content is not None:
            data["reasoning_content"] = self.reasoning_content
        return data


@dataclass
class ChatCompletionRequest:
    """Body of a ``/chat/completions`` request."""

    model: str
    messages: list[WireMessage]
    tools: list[dict[str, Any]] | None = None
    tool_choice: str | None = None  # "none" | "auto" | "required"
    temperature: float | None = None
    top_p: float | None = None
    max_tokens: int | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
        }
        if self.tools is not None:
            payload["tools"] = self.tools
        if self.tool_choice is not None:
            payload["tool_choice"] = self.tool_choice
        for key in ("temperature", "top_p", "max_tokens"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        payload["stream"] = True
        return payload


# ---------------------------------------------------------------------------
# Stream types
# ---------------------------------------------------------------------------

@dataclass
class ToolCallFragment:
    """One indexed piece of a tool call from a streaming delta."""

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass
class StreamDelta:
    """The interesting fields of ``choices[0]`` in one stream event."""

    content: str | None = None
    reasoning_content: str | None = None
    tool_calls: list[ToolCallFragment] = field(default_factory=list)
    finish_reason: str | None = None


@dataclass(frozen=True)
class CompletedToolCall:
    """A fully reassembled tool call."""

    id: str
    name: str
    arguments: str


Callback = Callable[..., Union[None, Awaitable[None]]]


@dataclass
class StreamCallbacks:
    """Sink for one streaming session.

    Each callback may be a plain function or a coroutine function.
    Exactly one of ``on_error`` / ``on_done`` fires per session.
    """

    on_content: Callback
    on_tool_call: Callback
    on_error: Callback
    on_done: Callback
    on_reasoning_content: Callback | None = None


# ---------------------------------------------------------------------------
# Model catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ModelInfo:
    """Static description of a model offered by the provider."""

    id: str
    name: str
    family: str
    version: str
    detail: str
    max_input_tokens: int
    max_output_tokens: int
    tool_calling: bool = True
    image_input: bool = False
    reasoning: bool = False
