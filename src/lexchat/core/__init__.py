"""Core types, errors, and shared utilities."""

from lexchat.core.errors import (
    ConfigError,
    InvalidActionError,
    LexchatError,
    MalformedModelOutputError,
    MissingRequiredFieldError,
    ModelNotFoundError,
    ProviderAuthError,
    ProviderError,
    ProviderOverloadedError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    StorageError,
    TodoNotFoundError,
    ToolError,
    ToolErrorKind,
    UnknownToolError,
)
from lexchat.core.retry import RetryConfig, is_retryable, retry_with_backoff

__all__ = [
    "ConfigError",
    "InvalidActionError",
    "LexchatError",
    "MalformedModelOutputError",
    "MissingRequiredFieldError",
    "ModelNotFoundError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderOverloadedError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "RetryConfig",
    "StorageError",
    "TodoNotFoundError",
    "ToolError",
    "ToolErrorKind",
    "UnknownToolError",
    "is_retryable",
    "retry_with_backoff",
]
