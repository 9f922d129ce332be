"""Stream parsing utilities for ``text/event-stream`` chat completions.

Three layers, each usable on its own:

* ``FrameDecoder`` turns raw byte chunks into newline-terminated frames.
* ``parse_frame`` classifies one frame (skip / done / delta).
* ``ToolCallAccumulator`` reassembles tool calls sent in fragments.
"""

from __future__ import annotations

import codecs
import enum
import json
import logging
from dataclasses import dataclass
from typing import Any

from deepseek_bridge.types import CompletedToolCall, StreamDelta, ToolCallFragment

_logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
COMMENT_PREFIX = ":"
TOOL_CALLS_FINISH_REASON = "tool_calls"


# ---------------------------------------------------------------------------
# FrameDecoder
# ---------------------------------------------------------------------------

class FrameDecoder:
    """Split a byte stream into complete text frames.

    Chunk boundaries are arbitrary: a frame is only emitted once its
    ``\\n`` terminator has been seen, and a UTF-8 sequence split across
    chunks is held back until it is complete.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Consume *chunk* and return every frame it completed."""
        self._buffer += self._decoder.decode(chunk)
        if "\n" not in self._buffer:
            return []
        *frames, self._buffer = self._buffer.split("\n")
        return frames

    def close(self) -> None:
        """End of stream.  An unterminated remainder is dropped."""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            _logger.debug("Discarding unterminated frame: %r", self._buffer[:200])
        self._buffer = ""

    def reset(self) -> None:
        self._decoder.reset()
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text received after the last terminator."""
        return self._buffer


# ---------------------------------------------------------------------------
# Frame classification
# ---------------------------------------------------------------------------

class FrameKind(enum.Enum):
    SKIP = "skip"
    DONE = "done"
    DELTA = "delta"


@dataclass
class ParsedFrame:
    kind: FrameKind
    delta: StreamDelta | None = None


_SKIP = ParsedFrame(FrameKind.SKIP)
_DONE = ParsedFrame(FrameKind.DONE)


def parse_frame(frame: str) -> ParsedFrame:
    """Classify one decoded frame.

    Blank frames, comments and non-data fields are skipped.  A payload
    that fails to decode is logged and skipped so that one bad frame
    does not end the session.
    """
    line = frame.strip()
    if not line or line.startswith(COMMENT_PREFIX):
        return _SKIP
    if not line.startswith(DATA_PREFIX):
        return _SKIP

    payload = line[len(DATA_PREFIX):].strip()
    if payload == DONE_SENTINEL:
        return _DONE

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        _logger.warning("Failed to parse stream chunk %r: %s", payload[:200], e)
        return _SKIP

    try:
        delta = _delta_from_chunk(data)
    except (TypeError, ValueError, AttributeError) as e:
        _logger.warning("Skipping malformed stream chunk %r: %s", payload[:200], e)
        return _SKIP
    if delta is None:
        return _SKIP
    return ParsedFrame(FrameKind.DELTA, delta)


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _delta_from_chunk(data: Any) -> StreamDelta | None:
    """Pull ``choices[0]`` out of a decoded chunk, or None if absent."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not choices or not isinstance(choices, list):
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta") or {}
    if not isinstance(delta, dict):
        _logger.warning("Skipping chunk with malformed delta: %r", delta)
        return None

    fragments: list[ToolCallFragment] = []
    tool_calls = delta.get("tool_calls") or []
    if not isinstance(tool_calls, list):
        _logger.warning("Skipping malformed tool_calls: %r", tool_calls)
        tool_calls = []
    for tc in tool_calls:
        fragment = _fragment_from_entry(tc)
        if fragment is not None:
            fragments.append(fragment)

    return StreamDelta(
        content=_str_or_none(delta.get("content")),
        reasoning_content=_str_or_none(delta.get("reasoning_content")),
        tool_calls=fragments,
        finish_reason=_str_or_none(choice.get("finish_reason")),
    )


def _fragment_from_entry(tc: Any) -> ToolCallFragment | None:
    if not isinstance(tc, dict):
        _logger.warning("Skipping malformed tool call fragment: %r", tc)
        return None
    index = tc.get("index", 0)
    func = tc.get("function") or {}
    # bool is an int subclass but never a valid index
    if not isinstance(index, int) or isinstance(index, bool) or not isinstance(func, dict):
        _logger.warning("Skipping malformed tool call fragment: %r", tc)
        return None
    return ToolCallFragment(
        index=index,
        id=_str_or_none(tc.get("id")),
        name=_str_or_none(func.get("name")),
        arguments=_str_or_none(func.get("arguments")),
    )


# ---------------------------------------------------------------------------
# ToolCallAccumulator
# ---------------------------------------------------------------------------

@dataclass
class _PendingToolCall:
    id: str
    name: str = ""
    arguments: str = ""


class ToolCallAccumulator:
    """Accumulate tool calls from streaming deltas.

    The first fragment for an index carries the call id; later fragments
    at that index append to the function name and argument text.
    Completed calls come out in the order their indices first appeared.
    """

    def __init__(self) -> None:
        self._pending: dict[int, _PendingToolCall] = {}

    def merge(self, fragment: ToolCallFragment) -> None:
        pending = self._pending.get(fragment.index)
        if pending is None:
            if not fragment.id:
                _logger.debug(
                    "Dropping tool call fragment for unknown index %d",
                    fragment.index,
                )
                return
            pending = _PendingToolCall(id=fragment.id)
            self._pending[fragment.index] = pending

        if fragment.name:
            pending.name += fragment.name
        if fragment.arguments:
            pending.arguments += fragment.arguments

    def has_pending(self) -> bool:
        return bool(self._pending)

    def drain_completed(self) -> list[CompletedToolCall]:
        """Return all pending calls as completed and clear state."""
        completed = [
            CompletedToolCall(id=p.id, name=p.name, arguments=p.arguments)
            for p in self._pending.values()
        ]
        self._pending.clear()
        return completed
