"""Provider adapter interface and data classes.

The chat session and the tool handlers talk to the model only through
the ``ModelProvider`` protocol: ``send`` for one complete reply,
``stream`` for incremental text. Data classes are immutable where
possible (frozen dataclasses with slots).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@dataclass(frozen=True, slots=True)
class TokenUsage:
    """Token counts from a single model call."""

    input_tokens: int
    output_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(slots=True)
class ModelResponse:
    """Complete response from a model call."""

    content: str
    model_id: str
    usage: TokenUsage
    finish_reason: str  # "end_turn", "max_tokens", "stop_sequence"
    latency_ms: float
    raw_response: object = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class StreamChunk:
    """A single chunk from a streaming response."""

    text: str
    is_final: bool = False
    usage: TokenUsage | None = None  # Only populated on final chunk


@dataclass(frozen=True, slots=True)
class PromptMessage:
    """A single message in a prompt sequence."""

    role: str  # "system", "user", "assistant"
    content: str


@runtime_checkable
class ModelProvider(Protocol):
    """Protocol that provider adapters satisfy.

    Implementations hold connection config but no conversation state.
    A ``system`` role message, if present, becomes the system prompt.
    """

    @property
    def provider_id(self) -> str: ...

    async def send(
        self,
        messages: list[PromptMessage],
        model_id: str,
        *,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> ModelResponse:
        """Send a prompt and wait for the complete response.

        Raises ProviderError on failure.
        """
        ...

    def stream(
        self,
        messages: list[PromptMessage],
        model_id: str,
        *,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> AsyncIterator[StreamChunk]:
        """Yield response chunks as they arrive.

        The connection is opened on the first ``__anext__``. The final
        chunk has ``is_final=True`` and carries usage. Raises
        ProviderError on failure.
        """
        ...

    async def health_check(self) -> bool:
        """Return True if the provider is reachable. Must not raise."""
        ...
