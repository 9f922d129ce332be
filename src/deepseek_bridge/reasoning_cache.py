"""Bounded store linking reasoning text to the turn that produced it.

The reasoner model expects its earlier ``reasoning_content`` to be sent
back on the assistant message that made a tool call.  Callers only hand
us the generic conversation on the next request, so reasoning is kept
here keyed by tool-call id (or a synthetic response id when the turn
made no tool call) and looked up again by the message bridge.

Entries are evicted oldest-inserted first.  The cache is in-memory only.
"""

from __future__ import annotations

import logging
import random
import string
import time
from typing import Iterator, Sequence

_logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 50

_ID_ALPHABET = string.digits + string.ascii_lowercase


class ReasoningCache:
    """Insertion-ordered mapping of call/response id -> reasoning text."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES) -> None:
        self.max_entries = max_entries
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def put(self, key: str, reasoning: str) -> None:
        """Store *reasoning* under *key*.  Overwrites keep their position."""
        self._entries[key] = reasoning

    def record(self, reasoning: str, tool_call_ids: Sequence[str] = ()) -> str | None:
        """Store *reasoning* under the first tool-call id, else a fresh id.

        Returns the key used, or None when there was nothing to store.
        """
        if not reasoning:
            return None
        key = tool_call_ids[0] if tool_call_ids else self.new_response_id()
        self.put(key, reasoning)
        return key

    def evict_over_capacity(self, max_entries: int | None = None) -> int:
        """Drop the oldest entries until at most *max_entries* remain.

        Returns the number of entries removed.
        """
        limit = self.max_entries if max_entries is None else max_entries
        excess = len(self._entries) - limit
        if excess <= 0:
            return 0
        for key in list(self._entries)[:excess]:
            del self._entries[key]
        _logger.debug("Evicted %d reasoning cache entries", excess)
        return excess

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    @staticmethod
    def new_response_id() -> str:
        """Synthetic id for a response that made no tool call."""
        suffix = "".join(random.choices(_ID_ALPHABET, k=9))
        return f"response_{int(time.time() * 1000)}_{suffix}"
