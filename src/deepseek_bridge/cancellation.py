"""Cooperative cancellation for streaming sessions."""

from __future__ import annotations

import logging
from typing import Callable

_logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def _run_listener(listener: Listener) -> None:
    try:
        listener()
    except Exception:
        _logger.exception(
            "Cancellation listener %s raised",
            getattr(listener, "__name__", listener),
        )


class CancellationToken:
    """A one-shot cancellation flag with listeners.

    ``cancel()`` sets the flag and runs every registered listener once.
    Listeners registered after cancellation run immediately.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._listeners: list[Listener] = []

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation."""
        if self._cancelled:
            return
        self._cancelled = True
        listeners = list(self._listeners)
        self._listeners.clear()
        for listener in listeners:
            _run_listener(listener)

    def on_cancellation_requested(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; return a function that unregisters it."""
        if self._cancelled:
            _run_listener(listener)
            return lambda: None
        self._listeners.append(listener)

        def dispose() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return dispose
