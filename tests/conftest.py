"""Shared test fixtures for lexchat."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from lexchat.config.schema import LexchatConfig
from lexchat.core.retry import RetryConfig
from lexchat.tools.dispatcher import build_dispatcher
from lexchat.tools.handlers import HandlerDeps
from lexchat.tools.todo import TodoStore

if TYPE_CHECKING:
    from pathlib import Path

    from lexchat.tools.dispatcher import ToolDispatcher


@pytest.fixture
def todo_store(tmp_path: Path) -> TodoStore:
    return TodoStore(tmp_path / "todos.json")


@pytest.fixture
def make_config(tmp_path: Path) -> Any:
    """Factory for configs that keep the to-do file under tmp_path."""

    def _make(**overrides: Any) -> LexchatConfig:
        data: dict[str, Any] = {
            "provider": {"api_key": "test-key"},
            "todo": {"path": str(tmp_path / "todos.json")},
        }
        data.update(overrides)
        return LexchatConfig.model_validate(data)

    return _make


@pytest.fixture
def make_dispatcher(todo_store: TodoStore) -> Any:
    """Factory for a dispatcher over the built-in catalog and a mock provider."""

    def _make(provider: Any) -> ToolDispatcher:
        deps = HandlerDeps(
            provider=provider,
            model_id="tool-model",
            todo_store=todo_store,
            retry=RetryConfig(max_retries=0),
        )
        return build_dispatcher(deps)

    return _make
