"""Exception types raised by deepseek-bridge."""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""


class ConfigurationError(BridgeError):
    """Required configuration (usually the API key) is missing."""


class TransportError(BridgeError):
    """The HTTP exchange failed below the protocol level."""


class APIStatusError(BridgeError):
    """The API answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"DeepSeek API error ({status_code}): {message}")
