"""Tool dispatcher: name -> handler registration table.

``dispatch()`` is the error boundary for tool execution. Whatever goes
wrong (unknown name, missing field, bad model output, provider outage,
unreadable to-do file) comes back as a :class:`ToolResult` with an error
kind; nothing raised by a handler reaches the stream.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lexchat.core.errors import (
    MalformedModelOutputError,
    MissingRequiredFieldError,
    ProviderError,
    StorageError,
    ToolError,
    ToolErrorKind,
    UnknownToolError,
)
from lexchat.tools.base import ToolResult

if TYPE_CHECKING:
    from collections.abc import Mapping

    from lexchat.tools.base import ToolInvocation
    from lexchat.tools.handlers import Handler, HandlerDeps
    from lexchat.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

# Raw model text embedded in a MalformedModelOutput detail is capped
_RAW_EXCERPT_CHARS = 2000


class ToolDispatcher:
    """Validates invocations against the registry and runs their handler."""

    def __init__(
        self,
        registry: ToolRegistry,
        deps: HandlerDeps,
        handlers: Mapping[str, Handler] | None = None,
    ) -> None:
        self._registry = registry
        self._deps = deps
        self._handlers: dict[str, Handler] = {}
        for name, handler in (handlers or {}).items():
            self.register(name, handler)

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def register(self, name: str, handler: Handler) -> None:
        """Bind a handler to a catalogued tool.

        Raises:
            ValueError: If the tool is not in the registry or already bound.
        """
        if name not in self._registry:
            msg = f"Cannot register handler for uncatalogued tool: {name}"
            raise ValueError(msg)
        if name in self._handlers:
            msg = f"Handler already registered: {name}"
            raise ValueError(msg)
        self._handlers[name] = handler

    async def dispatch(self, invocation: ToolInvocation) -> ToolResult:
        """Run one invocation. Never raises."""
        name = invocation.name
        try:
            spec = self._registry.describe(name)
            handler = self._handlers.get(name)
            if handler is None:
                raise UnknownToolError(name)
            missing = spec.missing_fields(invocation.input)
            if missing:
                raise MissingRequiredFieldError(name, missing[0])
            logger.info("Dispatching tool %s", name)
            result = await handler(invocation.input, self._deps)
        except MalformedModelOutputError as e:
            logger.warning("Tool %s got malformed model output: %s", name, e)
            detail = f"{e}. Raw reply: {e.raw[:_RAW_EXCERPT_CHARS]}"
            return ToolResult.failure(name, e.kind, detail)
        except ToolError as e:
            logger.warning("Tool %s failed: %s", name, e)
            return ToolResult.failure(name, e.kind, str(e))
        except ProviderError as e:
            logger.warning("Tool %s model call failed: %s", name, e)
            return ToolResult.failure(
                name, ToolErrorKind.UPSTREAM_TRANSPORT_ERROR, str(e)
            )
        except StorageError as e:
            logger.error("Tool %s storage failure: %s", name, e)
            return ToolResult.failure(name, ToolErrorKind.STORAGE_ERROR, str(e))
        except Exception as e:
            logger.exception("Tool %s raised unexpectedly", name)
            return ToolResult.failure(
                name, ToolErrorKind.TOOL_EXECUTION_ERROR, f"Tool execution error: {e}"
            )

        logger.debug("Tool %s returned %d chars", name, len(result.payload))
        return result


def build_dispatcher(
    deps: HandlerDeps, registry: ToolRegistry | None = None
) -> ToolDispatcher:
    """Dispatcher with the default handler bound to every catalogued tool."""
    from lexchat.tools.handlers import default_handlers
    from lexchat.tools.registry import default_registry

    if registry is None:
        registry = default_registry()
    handlers = {n: h for n, h in default_handlers().items() if n in registry}
    return ToolDispatcher(registry, deps, handlers)
