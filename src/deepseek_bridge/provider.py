"""Chat provider: generic conversation in, streamed response parts out.

``DeepSeekChatProvider`` ties the message bridge, the streaming client
and the reasoning cache together.  A caller hands it a conversation and
a ``report`` callback; text and completed tool calls are reported as
``TextPart`` / ``ToolCallPart`` while the response streams.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Callable, Sequence

from deepseek_bridge.cancellation import CancellationToken
from deepseek_bridge.config import API_KEY_ENV, BridgeConfig, resolve_api_key
from deepseek_bridge.convert import convert_tools, to_wire_messages
from deepseek_bridge.errors import ConfigurationError
from deepseek_bridge.llm.client import DeepSeekClient, invoke_callback
from deepseek_bridge.reasoning_cache import ReasoningCache
from deepseek_bridge.types import (
    ChatCompletionRequest,
    ChatMessage,
    CompletedToolCall,
    ModelInfo,
    StreamCallbacks,
    TextPart,
    ToolCallPart,
    ToolSpec,
)

_logger = logging.getLogger(__name__)

MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(
        id="deepseek-chat",
        name="DeepSeek Chat",
        family="deepseek",
        version="v3.2",
        detail="Official",
        max_input_tokens=128_000,
        max_output_tokens=8_192,
        tool_calling=True,
    ),
    ModelInfo(
        id="deepseek-reasoner",
        name="DeepSeek Reasoner",
        family="deepseek",
        version="v3.2",
        detail="Official",
        max_input_tokens=128_000,
        max_output_tokens=65_536,
        tool_calling=True,
        reasoning=True,
    ),
)


def get_model(model_id: str) -> ModelInfo:
    for model in MODELS:
        if model.id == model_id:
            return model
    raise ValueError(f"Unknown model: {model_id}")


def estimate_tokens(text: str) -> int:
    """Rough token estimate: four characters per token, at least one."""
    return max(1, math.ceil(len(text) / 4))


ClientFactory = Callable[[BridgeConfig, str], DeepSeekClient]


def _default_client(config: BridgeConfig, api_key: str) -> DeepSeekClient:
    return DeepSeekClient(
        base_url=config.base_url,
        api_key=api_key,
        timeout=config.timeout,
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
    )


class DeepSeekChatProvider:
    """Caller-facing entry point.

    Parameters
    ----------
    config:
        Bridge configuration.  Defaults to ``BridgeConfig()``.
    cache:
        Reasoning correlation cache shared across this provider's
        sessions.  Sessions against one cache must not overlap.
    client_factory:
        Builds a ``DeepSeekClient`` from ``(config, api_key)``.
    """

    def __init__(
        self,
        config: BridgeConfig | None = None,
        cache: ReasoningCache | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config or BridgeConfig()
        self.reasoning_cache = (
            cache if cache is not None
            else ReasoningCache(self.config.reasoning_cache_size)
        )
        self._client_factory = client_factory or _default_client

    # ------------------------------------------------------------------
    # Model catalog
    # ------------------------------------------------------------------

    def list_models(self, silent: bool = True) -> list[ModelInfo]:
        """Available models, or an empty list when no API key is set."""
        if resolve_api_key(self.config) is None:
            if not silent:
                _logger.warning("No API key configured (set %s)", API_KEY_ENV)
            return []
        return list(MODELS)

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    async def provide_response(
        self,
        model_id: str,
        messages: Sequence[ChatMessage],
        report: Callable[[Any], Any],
        tools: Sequence[ToolSpec] | None = None,
        cancellation: CancellationToken | None = None,
        on_reasoning: Callable[[str], Any] | None = None,
    ) -> None:
        """Stream one response for *messages*.

        Returns when the response is complete or cancelled; raises the
        session error otherwise.  ``ConfigurationError`` is raised before
        any request is made when no API key is available.
        """
        api_key = resolve_api_key(self.config)
        if not api_key:
            raise ConfigurationError(
                f"DeepSeek API key not configured. Set {API_KEY_ENV} "
                "or api_key in the config file."
            )

        model = get_model(model_id)
        is_reasoner = model.reasoning

        wire_messages = to_wire_messages(messages, is_reasoner, self.reasoning_cache)
        # Entries only correlate with the turn just rendered above.
        self.reasoning_cache.clear()

        tool_schemas = convert_tools(tools) if model.tool_calling else None
        request = ChatCompletionRequest(
            model=model.id,
            messages=wire_messages,
            tools=tool_schemas,
            tool_choice="auto" if tool_schemas else None,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

        session = _ResponseSession(
            cache=self.reasoning_cache,
            report=report,
            track_reasoning=is_reasoner,
            on_reasoning=on_reasoning,
        )
        callbacks = StreamCallbacks(
            on_content=session.on_content,
            on_tool_call=session.on_tool_call,
            on_error=session.on_error,
            on_done=session.on_done,
            on_reasoning_content=session.on_reasoning_content if is_reasoner else None,
        )

        _logger.debug(
            "Requesting %s with %d messages, %d tools",
            model.id, len(wire_messages), len(tool_schemas or []),
        )
        async with self._client_factory(self.config, api_key) as client:
            await client.stream_chat_completion(request, callbacks, cancellation)

        if session.error is not None:
            raise session.error

    # ------------------------------------------------------------------
    # Token estimation
    # ------------------------------------------------------------------

    def count_tokens(self, value: str | ChatMessage) -> int:
        """Estimate tokens for a string or the text parts of a message."""
        if isinstance(value, str):
            return estimate_tokens(value)
        return estimate_tokens(value.text)


class _ResponseSession:
    """Per-response state: reasoning buffer and terminal error."""

    def __init__(
        self,
        cache: ReasoningCache,
        report: Callable[[Any], Any],
        track_reasoning: bool,
        on_reasoning: Callable[[str], Any] | None,
    ) -> None:
        self._cache = cache
        self._report = report
        self._track_reasoning = track_reasoning
        self._on_reasoning = on_reasoning
        self.reasoning = ""
        self.error: BaseException | None = None

    async def on_content(self, content: str) -> None:
        await invoke_callback(self._report, TextPart(content))

    async def on_reasoning_content(self, content: str) -> None:
        self.reasoning += content
        if self._on_reasoning is not None:
            await invoke_callback(self._on_reasoning, content)

    async def on_tool_call(self, tool_call: CompletedToolCall) -> None:
        if self._track_reasoning and self.reasoning:
            # Reasoning flowing up to this call belongs to it.
            self._cache.record(self.reasoning, [tool_call.id])
            self.reasoning = ""

        try:
            args = json.loads(tool_call.arguments)
        except json.JSONDecodeError:
            _logger.debug(
                "Tool call %s has invalid JSON arguments: %r",
                tool_call.id, tool_call.arguments[:200],
            )
            args = {}
        if not isinstance(args, dict):
            _logger.debug(
                "Tool call %s arguments are not a JSON object: %r",
                tool_call.id, tool_call.arguments[:200],
            )
            args = {}

        await invoke_callback(
            self._report,
            ToolCallPart(call_id=tool_call.id, name=tool_call.name, input=args),
        )

    def on_error(self, error: BaseException) -> None:
        self.error = error

    def on_done(self) -> None:
        if self._track_reasoning and self.reasoning:
            self._cache.record(self.reasoning)
            self.reasoning = ""
        self._cache.evict_over_capacity()
