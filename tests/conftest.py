"""Shared fixtures: a DeepSeekClient wired to an in-memory transport."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from deepseek_bridge.llm.client import DeepSeekClient
from tests.helpers import ChunkStream, Recorder


class FakeServer:
    """Serves one scripted response per request and records requests."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.streams: list[ChunkStream] = []
        self._responses: list[Callable[[], httpx.Response]] = []

    def add_stream(
        self,
        chunks: list[bytes],
        status_code: int = 200,
        hang: bool = False,
    ) -> ChunkStream:
        stream = ChunkStream(chunks, hang=hang)
        self.streams.append(stream)
        self._responses.append(
            lambda: httpx.Response(
                status_code,
                headers={"content-type": "text/event-stream"},
                stream=stream,
            )
        )
        return stream

    def add_error(self, status_code: int, body: str) -> None:
        self.add_stream([body.encode("utf-8")], status_code=status_code)

    def add_exception(self, exc: Exception) -> None:
        def raise_it() -> httpx.Response:
            raise exc
        self._responses.append(raise_it)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responses.pop(0)()

    @property
    def last_payload(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
async def client(server: FakeServer):
    c = DeepSeekClient(
        base_url="http://deepseek.test",
        api_key="sk-test",
        transport=httpx.MockTransport(server.handler),
    )
    yield c
    await c.close()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
