"""Exception hierarchy for lexchat.

Every module imports from here. The hierarchy is:

    LexchatError
    ├── ProviderError(provider_id)
    │   ├── ProviderAuthError
    │   ├── ProviderRateLimitError(retry_after)
    │   ├── ProviderTimeoutError
    │   ├── ProviderOverloadedError
    │   └── ModelNotFoundError
    ├── ToolError(kind)
    │   ├── UnknownToolError
    │   ├── MissingRequiredFieldError(field_name)
    │   ├── InvalidActionError(action)
    │   ├── MalformedModelOutputError(raw)
    │   └── TodoNotFoundError(item_id)
    ├── ConfigError
    └── StorageError

Tool errors never leave the dispatcher: they are folded into a
``ToolResult`` carrying the error kind string.
"""

from __future__ import annotations

import enum


class LexchatError(Exception):
    """Base exception for all lexchat errors."""


# ─── Provider Errors ──────────────────────────────────────────


class ProviderError(LexchatError):
    """Base for provider-related errors."""

    def __init__(self, provider_id: str, message: str) -> None:
        self.provider_id = provider_id
        super().__init__(f"[{provider_id}] {message}")


class ProviderAuthError(ProviderError):
    """Invalid or missing API key."""


class ProviderRateLimitError(ProviderError):
    """Rate limit exceeded. Includes retry_after if available."""

    def __init__(self, provider_id: str, retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        msg = "Rate limited"
        if retry_after is not None:
            msg += f" (retry after {retry_after}s)"
        super().__init__(provider_id, msg)


class ProviderTimeoutError(ProviderError):
    """Model call timed out."""


class ProviderOverloadedError(ProviderError):
    """Provider is overloaded (529, 503)."""


class ModelNotFoundError(ProviderError):
    """Requested model not available from this provider."""


# ─── Tool Errors ──────────────────────────────────────────────


class ToolErrorKind(str, enum.Enum):
    """Error kinds reported in a failed tool result payload."""

    UNKNOWN_TOOL = "UnknownTool"
    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_ACTION = "InvalidAction"
    MALFORMED_MODEL_OUTPUT = "MalformedModelOutput"
    UPSTREAM_TRANSPORT_ERROR = "UpstreamTransportError"
    STORAGE_ERROR = "StorageError"
    NOT_FOUND = "NotFound"
    TOOL_EXECUTION_ERROR = "ToolExecutionError"


class ToolError(LexchatError):
    """Base for errors raised while validating or running a tool."""

    kind: ToolErrorKind = ToolErrorKind.TOOL_EXECUTION_ERROR


class UnknownToolError(ToolError):
    """No tool with this name is registered."""

    kind = ToolErrorKind.UNKNOWN_TOOL

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class MissingRequiredFieldError(ToolError):
    """A required input parameter is absent or empty."""

    kind = ToolErrorKind.MISSING_REQUIRED_FIELD

    def __init__(self, tool_name: str, field_name: str) -> None:
        self.tool_name = tool_name
        self.field_name = field_name
        super().__init__(f"Tool '{tool_name}' requires field '{field_name}'")


class InvalidActionError(ToolError):
    """The ``action`` field names an operation the tool does not support."""

    kind = ToolErrorKind.INVALID_ACTION

    def __init__(self, action: str, allowed: tuple[str, ...]) -> None:
        self.action = action
        super().__init__(
            f"Invalid action '{action}' (expected one of: {', '.join(allowed)})"
        )


class MalformedModelOutputError(ToolError):
    """The model reply could not be parsed into the expected shape."""

    kind = ToolErrorKind.MALFORMED_MODEL_OUTPUT

    def __init__(self, message: str, raw: str = "") -> None:
        self.raw = raw
        super().__init__(message)


class TodoNotFoundError(ToolError):
    """No to-do item with the given id."""

    kind = ToolErrorKind.NOT_FOUND

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"To-do item not found: {item_id}")


# ─── Configuration Errors ─────────────────────────────────────


class ConfigError(LexchatError):
    """Invalid configuration."""


# ─── Storage Errors ───────────────────────────────────────────


class StorageError(LexchatError):
    """To-do file unreadable, corrupt, or unwritable."""
