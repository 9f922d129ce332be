"""Helpers for building fake ``text/event-stream`` responses."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

from deepseek_bridge.types import StreamCallbacks


def sse_event(
    content: str | None = None,
    reasoning: str | None = None,
    tool_calls: list[dict[str, Any]] | None = None,
    finish_reason: str | None = None,
) -> str:
    """One ``data: {...}`` frame in the DeepSeek chunk shape."""
    delta: dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    if reasoning is not None:
        delta["reasoning_content"] = reasoning
    if tool_calls is not None:
        delta["tool_calls"] = tool_calls
    chunk = {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "created": 1700000000,
        "model": "deepseek-chat",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }
    return f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n"


def tool_fragment(
    index: int,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> dict[str, Any]:
    frag: dict[str, Any] = {"index": index}
    if call_id is not None:
        frag["id"] = call_id
        frag["type"] = "function"
    func: dict[str, Any] = {}
    if name is not None:
        func["name"] = name
    if arguments is not None:
        func["arguments"] = arguments
    if func:
        frag["function"] = func
    return frag


DONE = "data: [DONE]\n\n"


class ChunkStream(httpx.AsyncByteStream):
    """Response body that yields fixed chunks, optionally hanging after.

    ``hang=True`` blocks forever once the chunks are exhausted, as a
    server that keeps the connection open would.
    """

    def __init__(self, chunks: list[bytes], hang: bool = False) -> None:
        self.chunks = chunks
        self.hang = hang
        self.closed = False
        self.hanging = asyncio.Event()

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.hang:
            self.hanging.set()
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


def to_chunks(text: str, size: int | None = None) -> list[bytes]:
    data = text.encode("utf-8")
    if size is None:
        return [data]
    return [data[i:i + size] for i in range(0, len(data), size)]


class Recorder:
    """Collects callback invocations in order."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def callbacks(self, reasoning: bool = True) -> StreamCallbacks:
        return StreamCallbacks(
            on_content=lambda text: self.events.append(("content", text)),
            on_tool_call=lambda tc: self.events.append(("tool_call", tc)),
            on_error=lambda err: self.events.append(("error", err)),
            on_done=lambda: self.events.append(("done", None)),
            on_reasoning_content=(
                (lambda text: self.events.append(("reasoning", text)))
                if reasoning else None
            ),
        )

    def of(self, kind: str) -> list[Any]:
        return [value for k, value in self.events if k == kind]

    @property
    def terminals(self) -> list[str]:
        return [k for k, _ in self.events if k in ("error", "done")]
