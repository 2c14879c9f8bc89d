"""Retry with exponential backoff for provider calls."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from lexchat.core.errors import (
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = logging.getLogger(__name__)

_RETRYABLE_TYPES: tuple[type[Exception], ...] = (
    ProviderRateLimitError,
    ProviderTimeoutError,
    ProviderOverloadedError,
)


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry with backoff."""

    max_retries: int = 2
    base_delay: float = 1.0
    max_delay: float = 30.0
    jitter: bool = True


def is_retryable(error: Exception) -> bool:
    """Check if an error should trigger a retry."""
    return isinstance(error, _RETRYABLE_TYPES)


def _compute_delay(attempt: int, config: RetryConfig, error: Exception) -> float:
    if isinstance(error, ProviderRateLimitError) and error.retry_after is not None:
        return min(error.retry_after, config.max_delay)

    delay: float = min(config.base_delay * (2**attempt), config.max_delay)
    if config.jitter:
        delay *= random.uniform(0.5, 1.5)
    return delay


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
) -> T:
    """Await ``fn()``, retrying transient provider failures.

    Rate limits, timeouts and overloads are retried up to
    ``config.max_retries`` times; anything else propagates at once.
    The last error is re-raised when retries run out.
    """
    cfg = config or RetryConfig()

    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as e:
            if not is_retryable(e) or attempt >= cfg.max_retries:
                raise
            delay = _compute_delay(attempt, cfg, e)
            attempt += 1
            logger.info(
                "Retrying model call (attempt %d/%d) in %.1fs: %s",
                attempt,
                cfg.max_retries,
                delay,
                e,
            )
            await asyncio.sleep(delay)
