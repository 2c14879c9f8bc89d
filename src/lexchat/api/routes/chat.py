"""POST /api/chat -- stream a tool-augmented chat reply."""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from lexchat.core.errors import LexchatError
from lexchat.providers.base import PromptMessage
from lexchat.stream.session import ChatSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

STREAMING_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)


class ToolInfo(BaseModel):
    name: str
    description: str
    input_schema: dict[str, Any]


@router.post("/chat", response_model=None)
async def chat(body: ChatRequest, request: Request) -> StreamingResponse | JSONResponse:
    """Stream narrative text; tool calls are handled server-side.

    Returns 500 with ``{"error": ...}`` only if the model stream cannot
    be opened. Once streaming starts, errors are logged, not sent.
    """
    session = ChatSession(
        request.app.state.provider,
        request.app.state.dispatcher,
        request.app.state.config,
    )
    history = [PromptMessage(role=m.role, content=m.content) for m in body.messages]

    try:
        stream = await session.open(history)
    except LexchatError as exc:
        logger.error("Model stream could not be opened: %s", exc)
        return JSONResponse(
            status_code=500, content={"error": "Failed to get AI response"}
        )
    except Exception:
        logger.exception("Unexpected error opening /api/chat stream")
        return JSONResponse(
            status_code=500, content={"error": "Failed to get AI response"}
        )

    return StreamingResponse(
        stream, media_type="text/plain; charset=utf-8", headers=STREAMING_HEADERS
    )


@router.get("/tools")
async def list_tools(request: Request) -> list[ToolInfo]:
    """The tool catalog, in the order shown to the model."""
    registry = request.app.state.dispatcher.registry
    return [
        ToolInfo(name=t.name, description=t.description, input_schema=t.input_schema)
        for t in registry.list_tools()
    ]
