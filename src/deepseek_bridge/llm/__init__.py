"""Streaming client and stream parsing for deepseek-bridge."""

from deepseek_bridge.llm.client import DeepSeekClient
from deepseek_bridge.llm.response_parser import (
    FrameDecoder,
    FrameKind,
    ParsedFrame,
    ToolCallAccumulator,
    parse_frame,
)

__all__ = [
    "DeepSeekClient",
    "FrameDecoder",
    "FrameKind",
    "ParsedFrame",
    "ToolCallAccumulator",
    "parse_frame",
]
