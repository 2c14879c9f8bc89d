"""Streaming: tool-call interception and the per-request chat loop."""

from lexchat.stream.interceptor import (
    TOOL_SENTINEL,
    StreamInterceptor,
    StreamMode,
    StreamState,
    parse_call,
)
from lexchat.stream.session import ChatSession, RequestContext, build_system_prompt

__all__ = [
    "TOOL_SENTINEL",
    "ChatSession",
    "RequestContext",
    "StreamInterceptor",
    "StreamMode",
    "StreamState",
    "build_system_prompt",
    "parse_call",
]
