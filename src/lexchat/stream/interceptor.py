"""Stream interceptor: removes in-band tool calls from a token stream.

The chat model writes tool calls inline, as ``[USE_TOOL]name{json}``,
between ordinary narrative tokens. The interceptor is a state machine
over those tokens:

* ``PASSTHROUGH`` forwards narrative as it arrives. A trailing fragment
  that could be the start of the sentinel is held back until the next
  token settles it, so a sentinel split across tokens never leaks.
* ``BUFFERING`` starts at the sentinel and swallows everything up to the
  brace that balances the first ``{`` after it. A bracket-depth counter
  (which ignores braces inside JSON strings) advances over each new
  character once. When depth returns to zero the buffered text is parsed
  and dispatched, and whatever followed the closing brace goes back
  through ``PASSTHROUGH``.
* ``DISCARDING`` follows a call that outgrew the buffer bound. The
  bracket counter keeps running but nothing is stored; once the call
  balances, ``PASSTHROUGH`` resumes after it.

Only one call is buffered at a time: a sentinel seen while buffering is
plain buffered text. A call that exceeds the bound is dropped, as is a
call still open when the stream ends. Parse and dispatch failures are
logged and swallowed, never forwarded.

:meth:`StreamInterceptor.feed` / :meth:`StreamInterceptor.finish` are
the synchronous state machine; :meth:`StreamInterceptor.run` drives it
over an async token source and awaits each dispatch before resuming.
"""

from __future__ import annotations

import asyncio
import enum
import json
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lexchat.tools.base import ToolInvocation

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable

    from lexchat.tools.base import ToolResult

    DispatchFn = Callable[[ToolInvocation], Awaitable[ToolResult]]

logger = logging.getLogger(__name__)

TOOL_SENTINEL = "[USE_TOOL]"
DEFAULT_MAX_CALL_CHARS = 16_384


class StreamMode(enum.Enum):
    PASSTHROUGH = "passthrough"
    BUFFERING = "buffering"
    DISCARDING = "discarding"


@dataclass(frozen=True, slots=True)
class Narrative:
    """Text to forward to the client."""

    text: str


@dataclass(frozen=True, slots=True)
class CallText:
    """A complete buffered tool call, sentinel through closing brace."""

    raw: str


Segment = Narrative | CallText


@dataclass
class StreamState:
    """Per-request interceptor state. Discarded when the stream closes."""

    mode: StreamMode = StreamMode.PASSTHROUGH
    buffer: str = ""
    # Narrative forwarded so far, for diagnostics only
    emitted: list[str] = field(default_factory=list)
    # Held-back tail that may be the start of a sentinel
    pending: str = ""

    # Bracket scanner over the buffer
    depth: int = 0
    in_string: bool = False
    escaped: bool = False

    calls_completed: int = 0
    calls_dropped: int = 0

    @property
    def emitted_text(self) -> str:
        return "".join(self.emitted)

    def start_call(self, sentinel: str) -> None:
        self.mode = StreamMode.BUFFERING
        self.buffer = sentinel
        self.depth = 0
        self.in_string = False
        self.escaped = False

    def end_call(self) -> None:
        self.mode = StreamMode.PASSTHROUGH
        self.buffer = ""
        self.depth = 0
        self.in_string = False
        self.escaped = False


def _held_prefix_len(text: str, sentinel: str) -> int:
    """Length of the longest suffix of ``text`` that is a proper prefix of ``sentinel``."""
    for size in range(min(len(text), len(sentinel) - 1), 0, -1):
        if sentinel.startswith(text[-size:]):
            return size
    return 0


def parse_call(raw: str, sentinel: str = TOOL_SENTINEL) -> ToolInvocation:
    """Parse ``<sentinel><name><json-object>`` into an invocation.

    Raises:
        ValueError: If the text does not have that shape or the argument
            object is not valid JSON.
    """
    pattern = re.compile(rf"^{re.escape(sentinel)}\s*(\w+)\s*(\{{.*\}})$", re.DOTALL)
    match = pattern.match(raw)
    if match is None:
        msg = "text after sentinel is not <name>{...}"
        raise ValueError(msg)
    name, arguments = match.groups()
    parsed = json.loads(arguments)
    if not isinstance(parsed, dict):
        msg = "tool arguments are not a JSON object"
        raise ValueError(msg)
    return ToolInvocation.from_arguments(name, parsed)


class StreamInterceptor:
    """Single-pass filter from model tokens to client narrative."""

    def __init__(
        self,
        dispatch: DispatchFn,
        *,
        sentinel: str = TOOL_SENTINEL,
        max_call_chars: int = DEFAULT_MAX_CALL_CHARS,
    ) -> None:
        if not sentinel:
            msg = "sentinel must be non-empty"
            raise ValueError(msg)
        self._dispatch = dispatch
        self._sentinel = sentinel
        self._max_call_chars = max_call_chars
        self.state = StreamState()
        self.results: list[tuple[ToolInvocation, ToolResult]] = []

    # ── State machine ─────────────────────────────────────────

    def feed(self, token: str) -> list[Segment]:
        """Advance the state machine by one token."""
        out: list[Segment] = []
        text = token
        while text:
            if self.state.mode is StreamMode.PASSTHROUGH:
                text = self._passthrough(text, out)
            elif self.state.mode is StreamMode.BUFFERING:
                text = self._buffering(text, out)
            else:
                text = self._discarding(text)
        return out

    def finish(self) -> list[Segment]:
        """Handle end of stream: flush held text, drop an open call."""
        state = self.state
        out: list[Segment] = []
        if state.mode is StreamMode.BUFFERING:
            logger.warning(
                "Stream ended inside an unterminated tool call; dropping %d chars",
                len(state.buffer),
            )
            state.calls_dropped += 1
            state.end_call()
        elif state.mode is StreamMode.DISCARDING:
            logger.debug("Stream ended inside a discarded tool call")
            state.end_call()
        elif state.pending:
            self._emit(state.pending, out)
            state.pending = ""
        return out

    def _emit(self, text: str, out: list[Segment]) -> None:
        self.state.emitted.append(text)
        out.append(Narrative(text))

    def _passthrough(self, text: str, out: list[Segment]) -> str:
        state = self.state
        data = state.pending + text
        state.pending = ""

        idx = data.find(self._sentinel)
        if idx == -1:
            held = _held_prefix_len(data, self._sentinel)
            forward = data[: len(data) - held]
            state.pending = data[len(data) - held :]
            if forward:
                self._emit(forward, out)
            return ""

        if idx:
            self._emit(data[:idx], out)
        logger.debug("Tool call sentinel detected")
        state.start_call(self._sentinel)
        return data[idx + len(self._sentinel) :]

    def _buffering(self, text: str, out: list[Segment]) -> str:
        state = self.state
        for i, ch in enumerate(text):
            if len(state.buffer) + i + 1 > self._max_call_chars:
                logger.warning(
                    "Tool call exceeded %d chars without closing; discarding it",
                    self._max_call_chars,
                )
                state.calls_dropped += 1
                state.mode = StreamMode.DISCARDING
                state.buffer = ""
                return text[i:]
            if self._closes_call(ch):
                out.append(CallText(state.buffer + text[: i + 1]))
                state.calls_completed += 1
                state.end_call()
                return text[i + 1 :]
        state.buffer += text
        return ""

    def _discarding(self, text: str) -> str:
        for i, ch in enumerate(text):
            if self._closes_call(ch):
                self.state.end_call()
                return text[i + 1 :]
        return ""

    def _closes_call(self, ch: str) -> bool:
        """Advance the bracket counter by one char; True at the balancing brace."""
        state = self.state
        if state.depth == 0:
            if ch == "{":
                state.depth = 1
            return False
        if state.in_string:
            if state.escaped:
                state.escaped = False
            elif ch == "\\":
                state.escaped = True
            elif ch == '"':
                state.in_string = False
            return False
        if ch == '"':
            state.in_string = True
        elif ch == "{":
            state.depth += 1
        elif ch == "}":
            state.depth -= 1
            return state.depth == 0
        return False

    # ── Async driver ──────────────────────────────────────────

    async def run(self, tokens: AsyncIterator[str]) -> AsyncIterator[str]:
        """Yield narrative from ``tokens``, dispatching tool calls inline.

        The upstream iterator is closed when this generator finishes or
        is closed early (client disconnect).
        """
        try:
            async for token in tokens:
                for segment in self.feed(token):
                    if isinstance(segment, Narrative):
                        yield segment.text
                    else:
                        await self._handle_call(segment.raw)
            for segment in self.finish():
                if isinstance(segment, Narrative):
                    yield segment.text
        finally:
            aclose = getattr(tokens, "aclose", None)
            if aclose is not None:
                await aclose()
            logger.debug(
                "Interceptor closed: %d narrative chars, %d calls, %d dropped",
                sum(len(t) for t in self.state.emitted),
                self.state.calls_completed,
                self.state.calls_dropped,
            )

    async def _handle_call(self, raw: str) -> None:
        try:
            invocation = parse_call(raw, self._sentinel)
        except ValueError as e:
            logger.warning("Discarding malformed tool call (%s): %.200s", e, raw)
            return

        # Shielded: a client disconnect must not abort a tool mid-flight
        try:
            result = await asyncio.shield(self._dispatch(invocation))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Dispatch of tool %s failed", invocation.name)
            return

        if result.ok:
            logger.info("Tool %s completed", invocation.name)
        else:
            logger.warning(
                "Tool %s failed with %s: %s",
                invocation.name,
                result.error_kind.value if result.error_kind else "error",
                result.detail,
            )
        self.results.append((invocation, result))
