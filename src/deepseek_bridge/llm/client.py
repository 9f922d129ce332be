"""Async streaming client for the DeepSeek chat completions API.

One call to ``stream_chat_completion()`` is one session: a single POST
whose ``text/event-stream`` body is decoded incrementally and surfaced
through ``StreamCallbacks``.  There are no retries; the first transport
or protocol failure ends the session.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any

import httpx

from deepseek_bridge.cancellation import CancellationToken
from deepseek_bridge.errors import APIStatusError, TransportError
from deepseek_bridge.types import (
    ChatCompletionRequest,
    StreamCallbacks,
    StreamDelta,
)

from .response_parser import (
    TOOL_CALLS_FINISH_REASON,
    FrameDecoder,
    FrameKind,
    ToolCallAccumulator,
    parse_frame,
)

_logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.deepseek.com"


async def invoke_callback(callback: Any, *args: Any) -> None:
    """Call a sync or async callback."""
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


def _is_cancelled(token: CancellationToken | None) -> bool:
    return token is not None and token.is_cancellation_requested


def extract_error_message(body: str) -> str:
    """Pick the human-readable message out of an error response body."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return body
    if not isinstance(data, dict):
        return body
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if data.get("message"):
        return str(data["message"])
    return body


class DeepSeekClient:
    """Streaming client for an OpenAI-style ``/chat/completions`` endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str = "",
        timeout: float = 120,
        connect_timeout: float = 30,
        read_timeout: float = 300,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=connect_timeout, read=read_timeout),
            transport=transport,
        )

    async def __aenter__(self) -> DeepSeekClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Streaming session
    # ------------------------------------------------------------------

    async def stream_chat_completion(
        self,
        request: ChatCompletionRequest,
        callbacks: StreamCallbacks,
        cancellation: CancellationToken | None = None,
    ) -> None:
        """Run one streaming session; return once it has terminated.

        Exactly one of ``callbacks.on_error`` / ``callbacks.on_done`` is
        invoked.  Cancelling *cancellation* aborts the transfer and ends
        the session through ``on_done``.
        """
        transfer = asyncio.create_task(
            self._transfer(request, callbacks, cancellation),
        )
        dispose = (
            cancellation.on_cancellation_requested(transfer.cancel)
            if cancellation is not None
            else None
        )
        try:
            await transfer
        except asyncio.CancelledError:
            if not (_is_cancelled(cancellation) and transfer.cancelled()):
                raise
            _logger.debug("Stream cancelled by caller")
        except Exception as e:
            _logger.warning("Stream session failed: %s", e)
            await invoke_callback(callbacks.on_error, e)
            return
        finally:
            if dispose is not None:
                dispose()

        await invoke_callback(callbacks.on_done)

    async def _transfer(
        self,
        request: ChatCompletionRequest,
        callbacks: StreamCallbacks,
        cancellation: CancellationToken | None,
    ) -> None:
        payload = request.to_payload()
        try:
            async with self._client.stream(
                "POST", "/chat/completions", json=payload,
            ) as resp:
                if not resp.is_success:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    raise APIStatusError(resp.status_code, extract_error_message(body))
                await self._read_events(resp, callbacks, cancellation)
        except httpx.TransportError as e:
            raise TransportError(str(e) or type(e).__name__) from e

    async def _read_events(
        self,
        resp: httpx.Response,
        callbacks: StreamCallbacks,
        cancellation: CancellationToken | None,
    ) -> None:
        decoder = FrameDecoder()
        accumulator = ToolCallAccumulator()

        async for chunk in resp.aiter_bytes():
            if _is_cancelled(cancellation):
                _logger.debug("Cancellation observed between reads")
                return
            for frame in decoder.feed(chunk):
                parsed = parse_frame(frame)
                if parsed.kind is FrameKind.DONE:
                    await self._flush_tool_calls(accumulator, callbacks)
                    return
                if parsed.kind is FrameKind.DELTA and parsed.delta is not None:
                    await self._dispatch(parsed.delta, accumulator, callbacks)

        decoder.close()
        if _is_cancelled(cancellation):
            return
        # Stream closed without [DONE]
        await self._flush_tool_calls(accumulator, callbacks)

    async def _dispatch(
        self,
        delta: StreamDelta,
        accumulator: ToolCallAccumulator,
        callbacks: StreamCallbacks,
    ) -> None:
        if delta.reasoning_content and callbacks.on_reasoning_content is not None:
            await invoke_callback(callbacks.on_reasoning_content, delta.reasoning_content)

        if delta.content:
            await invoke_callback(callbacks.on_content, delta.content)

        for fragment in delta.tool_calls:
            accumulator.merge(fragment)

        if delta.finish_reason == TOOL_CALLS_FINISH_REASON:
            await self._flush_tool_calls(accumulator, callbacks)

    @staticmethod
    async def _flush_tool_calls(
        accumulator: ToolCallAccumulator,
        callbacks: StreamCallbacks,
    ) -> None:
        for tool_call in accumulator.drain_completed():
            await invoke_callback(callbacks.on_tool_call, tool_call)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
