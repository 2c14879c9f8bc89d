"""FastAPI application factory for the lexchat HTTP API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from lexchat.config.schema import LexchatConfig
    from lexchat.providers.base import ModelProvider
    from lexchat.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


def build_dispatcher_for(config: LexchatConfig, provider: ModelProvider) -> ToolDispatcher:
    """Wire handler dependencies from config and return the dispatcher."""
    from lexchat.core.retry import RetryConfig
    from lexchat.tools.dispatcher import build_dispatcher
    from lexchat.tools.handlers import HandlerDeps
    from lexchat.tools.todo import TodoStore

    retry = config.tools.retry
    deps = HandlerDeps(
        provider=provider,
        model_id=config.models.tool_model,
        max_tokens=config.models.tool_max_tokens,
        todo_store=TodoStore(config.todo.path),
        retry=RetryConfig(
            max_retries=retry.max_retries,
            base_delay=retry.base_delay,
            max_delay=retry.max_delay,
        ),
    )
    return build_dispatcher(deps)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the Anthropic provider on startup unless one was injected."""
    config: LexchatConfig = app.state.config
    if getattr(app.state, "provider", None) is None:
        from lexchat.providers.anthropic import AnthropicProvider

        if not config.provider.api_key:
            logger.warning("No Anthropic API key configured; model calls will fail")
        app.state.provider = AnthropicProvider(
            api_key=config.provider.api_key, base_url=config.provider.base_url
        )
        app.state.dispatcher = build_dispatcher_for(config, app.state.provider)

    yield


def create_app(
    config: LexchatConfig | None = None,
    *,
    provider: ModelProvider | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Passing ``provider`` wires the app immediately, without waiting for
    the lifespan handler (used by tests).
    """
    from lexchat import __version__
    from lexchat.config.loader import load_config

    if config is None:
        config = load_config()

    app = FastAPI(
        title="lexchat",
        description="Streaming legal assistant with in-band tool calls",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.provider = provider
    if provider is not None:
        app.state.dispatcher = build_dispatcher_for(config, provider)

    from fastapi.middleware.cors import CORSMiddleware

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from lexchat.api.health import router as health_router
    from lexchat.api.routes.chat import router as chat_router

    app.include_router(chat_router)
    app.include_router(health_router)

    return app
