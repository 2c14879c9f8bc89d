"""Model provider adapters."""

from lexchat.providers.base import (
    ModelProvider,
    ModelResponse,
    PromptMessage,
    StreamChunk,
    TokenUsage,
)

__all__ = [
    "ModelProvider",
    "ModelResponse",
    "PromptMessage",
    "StreamChunk",
    "TokenUsage",
]
