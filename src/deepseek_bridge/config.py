"""Configuration for deepseek-bridge.

Config discovery (first match wins):
  1. ``--config`` flag
  2. ``./deepseek_bridge.yaml``
  3. ``~/.config/deepseek-bridge/config.yaml``
  4. Built-in defaults

The API key is read from ``DEEPSEEK_API_KEY`` before the config file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

_logger = logging.getLogger(__name__)

API_KEY_ENV = "DEEPSEEK_API_KEY"


@dataclass
class BridgeConfig:
    """Top-level config."""

    base_url: str = "https://api.deepseek.com"
    api_key: str = ""

    # HTTP timeouts (seconds)
    timeout: float = 120
    connect_timeout: float = 30
    read_timeout: float = 300

    # Reasoning correlation
    reasoning_cache_size: int = 50

    # Optional sampling overrides
    temperature: float | None = None
    max_tokens: int | None = None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./deepseek_bridge.yaml"),
    Path.home() / ".config" / "deepseek-bridge" / "config.yaml",
]


def _parse_config(raw: dict[str, Any]) -> BridgeConfig:
    defaults = BridgeConfig()
    return BridgeConfig(
        base_url=raw.get("base_url") or defaults.base_url,
        api_key=raw.get("api_key") or "",
        timeout=raw.get("timeout", defaults.timeout),
        connect_timeout=raw.get("connect_timeout", defaults.connect_timeout),
        read_timeout=raw.get("read_timeout", defaults.read_timeout),
        reasoning_cache_size=raw.get(
            "reasoning_cache_size", defaults.reasoning_cache_size,
        ),
        temperature=raw.get("temperature"),
        max_tokens=raw.get("max_tokens"),
    )


def load_config(path: str | Path | None = None) -> BridgeConfig:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.

    Returns
    -------
    BridgeConfig
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            return BridgeConfig()
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        _logger.info("No config file found, using defaults")
        return BridgeConfig()

    _logger.info("Loading config from %s", config_path)
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return _parse_config(raw)


def resolve_api_key(config: BridgeConfig) -> str | None:
    """Return the API key from the environment or config, if any."""
    env_key = os.environ.get(API_KEY_ENV, "").strip()
    if env_key:
        return env_key
    if config.api_key and config.api_key.strip():
        return config.api_key.strip()
    return None
