"""Chat session: one request's conversation loop.

Opens the streaming completion, pipes it through a
:class:`StreamInterceptor`, and owns the per-request
:class:`RequestContext`. Extraction results live on that context, not
in module state: when ``extract_legal_info`` succeeds, later calls in
the same request to tools that declare ``extractedInfo`` receive it as
an explicit argument.

Tool results are never shown to the client. When
``follow_up_rounds`` allows, they are handed back to the model in a
follow-up streaming round so its narrative can use them.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lexchat.providers.base import PromptMessage
from lexchat.stream.interceptor import TOOL_SENTINEL, StreamInterceptor

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

    from lexchat.config.schema import LexchatConfig
    from lexchat.providers.base import ModelProvider, StreamChunk
    from lexchat.tools.base import ToolInvocation, ToolResult
    from lexchat.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

EXTRACTION_TOOL = "extract_legal_info"
EXTRACTION_FIELD = "extractedInfo"

_SYSTEM_PROMPT = """\
You are an AI assistant capable of analyzing legal texts and performing \
various legal tasks. You have access to the following tools:

{catalog}

To use a tool, write the marker {sentinel} immediately followed by the tool \
name and a JSON object with its arguments, for example:
{sentinel}missing_clause_detector{{"text": "...", "contract_type": "lease"}}

Tool arguments (all strings):
{arguments}

Before using a tool or providing a response, explain your thought process \
using <thinking> tags. Before using any tools, think through a plan and \
outline which tools you will need, as a numbered list of up to 10 steps. \
Proceed using one tool at a time. Tool output is not shown to the user; \
incorporate it naturally into your answer. After each tool use, ask the \
user if they would like to continue using tools or if they would like to \
stop or proceed.

When using the missing_clause_detector tool, specify the contract type \
based on the context of the legal document being analyzed.

You can use the todo_manager tool to keep track of tasks or follow-up items \
that come up during the conversation. Use it to add, list, or remove todo \
items as needed."""

_FOLLOW_UP_PROMPT = """\
Results of the tools you called (not visible to the user):

{results}

Continue your answer to the user, incorporating these results. Do not \
repeat the tool calls."""


@dataclass
class RequestContext:
    """State scoped to one chat request."""

    extraction: dict[str, Any] | None = None
    results: list[tuple[ToolInvocation, ToolResult]] = field(default_factory=list)


def build_system_prompt(dispatcher: ToolDispatcher) -> str:
    """System prompt listing the registry's tools and the call convention."""
    registry = dispatcher.registry
    arguments = "\n".join(
        f"- {spec.name}: "
        + ", ".join(
            p.name + ("" if p.name in spec.required else " (optional)")
            for p in spec.properties
        )
        for spec in registry.list_tools()
    )
    return _SYSTEM_PROMPT.format(
        catalog=registry.render_catalog(),
        sentinel=TOOL_SENTINEL,
        arguments=arguments,
    )


def _format_results(results: Sequence[tuple[ToolInvocation, ToolResult]]) -> str:
    return "\n\n".join(
        f"Tool '{invocation.name}' result:\n{result.payload}"
        for invocation, result in results
    )


async def _texts(chunks: AsyncIterator[StreamChunk]) -> AsyncIterator[str]:
    try:
        async for chunk in chunks:
            if chunk.text:
                yield chunk.text
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()


async def _primed(first: str, rest: AsyncIterator[str]) -> AsyncIterator[str]:
    """Re-attach an already-pulled first token to its iterator."""
    try:
        yield first
        async for token in rest:
            yield token
    finally:
        aclose = getattr(rest, "aclose", None)
        if aclose is not None:
            await aclose()


async def _empty() -> AsyncIterator[str]:
    return
    yield  # pragma: no cover


class ChatSession:
    """Runs one streamed chat request with tool interception."""

    def __init__(
        self,
        provider: ModelProvider,
        dispatcher: ToolDispatcher,
        config: LexchatConfig,
    ) -> None:
        self._provider = provider
        self._dispatcher = dispatcher
        self._config = config
        self.context = RequestContext()

    async def dispatch(self, invocation: ToolInvocation) -> ToolResult:
        """Dispatch with request context threaded in as explicit arguments."""
        extraction = self.context.extraction
        if extraction is not None and invocation.name in self._dispatcher.registry:
            spec = self._dispatcher.registry.describe(invocation.name)
            if spec.accepts(EXTRACTION_FIELD):
                invocation = invocation.with_defaults(
                    {EXTRACTION_FIELD: json.dumps(extraction, indent=2)}
                )

        result = await self._dispatcher.dispatch(invocation)
        if invocation.name == EXTRACTION_TOOL and result.ok and result.data is not None:
            self.context.extraction = result.data
        self.context.results.append((invocation, result))
        return result

    async def _open_tokens(self, messages: list[PromptMessage]) -> AsyncIterator[str]:
        """Open the upstream stream and pull its first token.

        Raises ProviderError if the stream cannot be established.
        """
        models = self._config.models
        chunks = self._provider.stream(
            messages,
            models.chat_model,
            max_tokens=models.chat_max_tokens,
            temperature=models.chat_temperature,
        )
        tokens = _texts(chunks)
        try:
            first = await anext(tokens)
        except StopAsyncIteration:
            return _empty()
        return _primed(first, tokens)

    async def open(self, history: Sequence[PromptMessage]) -> AsyncIterator[str]:
        """Start the request and return the client-facing narrative stream.

        Raises:
            ProviderError: If the initial upstream stream cannot be opened.
        """
        messages = [
            PromptMessage(role="system", content=build_system_prompt(self._dispatcher)),
            *history,
        ]
        tokens = await self._open_tokens(messages)
        return self._relay(messages, tokens)

    async def _relay(
        self, messages: list[PromptMessage], tokens: AsyncIterator[str]
    ) -> AsyncIterator[str]:
        tools = self._config.tools
        rounds_left = tools.follow_up_rounds

        while True:
            interceptor = StreamInterceptor(
                self.dispatch, max_call_chars=tools.max_call_chars
            )
            try:
                async for text in interceptor.run(tokens):
                    yield text
            except Exception:
                # Streaming has begun; the client stream must not break
                logger.exception("Upstream stream failed mid-response")
                return

            results = interceptor.results
            if not results or rounds_left <= 0:
                return
            rounds_left -= 1

            messages = [
                *messages,
                PromptMessage(
                    role="assistant",
                    content=interceptor.state.emitted_text or "(tool calls made)",
                ),
                PromptMessage(
                    role="user",
                    content=_FOLLOW_UP_PROMPT.format(results=_format_results(results)),
                ),
            ]
            logger.info("Follow-up round with %d tool result(s)", len(results))
            try:
                tokens = await self._open_tokens(messages)
            except Exception:
                logger.exception("Could not open follow-up stream")
                return
