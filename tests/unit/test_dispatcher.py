"""Tests for the tool dispatcher's validation and error boundary."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from lexchat.core.errors import ProviderOverloadedError, ToolErrorKind
from lexchat.core.retry import RetryConfig
from lexchat.tools.base import ToolInvocation, ToolResult
from lexchat.tools.dispatcher import ToolDispatcher, build_dispatcher
from lexchat.tools.handlers import HandlerDeps
from lexchat.tools.registry import ToolRegistry, default_registry
from tests.fixtures.providers import MockProvider

if TYPE_CHECKING:
    from collections.abc import Mapping

    from lexchat.tools.todo import TodoStore


def _error(result: ToolResult) -> dict[str, Any]:
    assert not result.ok
    return json.loads(result.payload)


# ── Validation ──────────────────────────────────────────────────────


class TestValidation:
    async def test_unknown_tool(self, make_dispatcher: Any) -> None:
        provider = MockProvider()
        result = await make_dispatcher(provider).dispatch(
            ToolInvocation("summon_judge", {"text": "x"})
        )
        assert result.error_kind is ToolErrorKind.UNKNOWN_TOOL
        assert _error(result) == {
            "error": "UnknownTool",
            "details": "Unknown tool: summon_judge",
        }
        assert provider.call_log == []

    async def test_missing_required_field_no_model_call(
        self, make_dispatcher: Any
    ) -> None:
        provider = MockProvider()
        result = await make_dispatcher(provider).dispatch(
            ToolInvocation("compliance_checker", {"text": "We collect emails."})
        )
        assert _error(result) == {
            "error": "MissingRequiredField",
            "details": "Tool 'compliance_checker' requires field 'regulation'",
        }
        assert provider.send_calls == []

    async def test_blank_required_field_is_missing(self, make_dispatcher: Any) -> None:
        provider = MockProvider()
        result = await make_dispatcher(provider).dispatch(
            ToolInvocation("ambiguity_detector", {"text": "   "})
        )
        assert result.error_kind is ToolErrorKind.MISSING_REQUIRED_FIELD
        assert provider.send_calls == []

    async def test_first_missing_field_reported(self, make_dispatcher: Any) -> None:
        result = await make_dispatcher(MockProvider()).dispatch(
            ToolInvocation("draft_improved_legal_text", {})
        )
        assert "originalText" in result.detail

    async def test_optional_field_may_be_absent(self, make_dispatcher: Any) -> None:
        provider = MockProvider(replies=["A plan."])
        result = await make_dispatcher(provider).dispatch(
            ToolInvocation("plan_legal_process", {"process": "Trademark filing"})
        )
        assert result.ok
        assert result.content == "A plan."


# ── Error mapping ───────────────────────────────────────────────────


class TestErrorMapping:
    async def test_provider_failure(self, make_dispatcher: Any) -> None:
        provider = MockProvider(replies=[ProviderOverloadedError("mock", "busy")])
        result = await make_dispatcher(provider).dispatch(
            ToolInvocation("ambiguity_detector", {"text": "reasonable efforts"})
        )
        body = _error(result)
        assert body["error"] == "UpstreamTransportError"
        assert "busy" in body["details"]

    async def test_malformed_extraction_includes_raw(self, make_dispatcher: Any) -> None:
        provider = MockProvider(replies=["Sorry, I cannot produce JSON."])
        result = await make_dispatcher(provider).dispatch(
            ToolInvocation("extract_legal_info", {"text": "A contract."})
        )
        body = _error(result)
        assert body["error"] == "MalformedModelOutput"
        assert "Sorry, I cannot produce JSON." in body["details"]

    async def test_unexpected_exception(self, todo_store: TodoStore) -> None:
        async def _broken(args: Mapping[str, str], deps: HandlerDeps) -> ToolResult:
            raise RuntimeError("kaboom")

        deps = HandlerDeps(
            provider=MockProvider(), model_id="m", todo_store=todo_store
        )
        dispatcher = ToolDispatcher(
            default_registry(), deps, {"conflict_checker": _broken}
        )
        result = await dispatcher.dispatch(
            ToolInvocation("conflict_checker", {"text": "x"})
        )
        assert _error(result) == {
            "error": "ToolExecutionError",
            "details": "Tool execution error: kaboom",
        }

    async def test_catalogued_tool_without_handler(self, todo_store: TodoStore) -> None:
        deps = HandlerDeps(provider=MockProvider(), model_id="m", todo_store=todo_store)
        dispatcher = ToolDispatcher(default_registry(), deps)
        result = await dispatcher.dispatch(
            ToolInvocation("conflict_checker", {"text": "x"})
        )
        assert result.error_kind is ToolErrorKind.UNKNOWN_TOOL

    async def test_storage_error(self, make_dispatcher: Any, todo_store: TodoStore) -> None:
        todo_store.path.write_text("not json")
        result = await make_dispatcher(MockProvider()).dispatch(
            ToolInvocation("todo_manager", {"action": "list"})
        )
        assert _error(result)["error"] == "StorageError"

    async def test_non_utf8_file_is_storage_error(
        self, make_dispatcher: Any, todo_store: TodoStore
    ) -> None:
        todo_store.path.write_bytes(b'[{"id": "1", "item": "\xff\xfe"}]')
        result = await make_dispatcher(MockProvider()).dispatch(
            ToolInvocation("todo_manager", {"action": "list"})
        )
        body = _error(result)
        assert body["error"] == "StorageError"
        assert "Cannot read to-do file" in body["details"]


# ── Registration ────────────────────────────────────────────────────


class TestRegistration:
    def test_duplicate_handler_rejected(self, make_dispatcher: Any) -> None:
        dispatcher = make_dispatcher(MockProvider())

        async def _other(args: Mapping[str, str], deps: HandlerDeps) -> ToolResult:
            return ToolResult.success("todo_manager", "")

        with pytest.raises(ValueError, match="already registered"):
            dispatcher.register("todo_manager", _other)

    def test_uncatalogued_handler_rejected(self, make_dispatcher: Any) -> None:
        dispatcher = make_dispatcher(MockProvider())

        async def _h(args: Mapping[str, str], deps: HandlerDeps) -> ToolResult:
            return ToolResult.success("x", "")

        with pytest.raises(ValueError, match="uncatalogued"):
            dispatcher.register("not_a_tool", _h)

    async def test_build_dispatcher_with_subset_registry(
        self, todo_store: TodoStore
    ) -> None:
        registry = ToolRegistry([default_registry().describe("todo_manager")])
        deps = HandlerDeps(
            provider=MockProvider(),
            model_id="m",
            todo_store=todo_store,
            retry=RetryConfig(max_retries=0),
        )
        dispatcher = build_dispatcher(deps, registry)
        result = await dispatcher.dispatch(
            ToolInvocation("ambiguity_detector", {"text": "x"})
        )
        assert result.error_kind is ToolErrorKind.UNKNOWN_TOOL
        ok = await dispatcher.dispatch(ToolInvocation("todo_manager", {"action": "list"}))
        assert ok.ok


# ── todo_manager through the dispatcher ─────────────────────────────


class TestTodoManager:
    async def test_add_list_remove(self, make_dispatcher: Any) -> None:
        dispatcher = make_dispatcher(MockProvider())

        added = await dispatcher.dispatch(
            ToolInvocation("todo_manager", {"action": "add", "item": "Call client"})
        )
        assert added.ok
        item_id = json.loads(added.content)["id"]

        listed = await dispatcher.dispatch(
            ToolInvocation("todo_manager", {"action": "list"})
        )
        assert json.loads(listed.content) == {
            "items": [{"id": item_id, "item": "Call client"}]
        }

        removed = await dispatcher.dispatch(
            ToolInvocation("todo_manager", {"action": "remove", "id": item_id})
        )
        assert json.loads(removed.content) == {"removed": item_id}

        listed = await dispatcher.dispatch(
            ToolInvocation("todo_manager", {"action": "list"})
        )
        assert json.loads(listed.content) == {"items": []}

    async def test_list_twice_unchanged(self, make_dispatcher: Any) -> None:
        dispatcher = make_dispatcher(MockProvider())
        await dispatcher.dispatch(
            ToolInvocation("todo_manager", {"action": "add", "item": "x"})
        )
        first = await dispatcher.dispatch(ToolInvocation("todo_manager", {"action": "list"}))
        second = await dispatcher.dispatch(
            ToolInvocation("todo_manager", {"action": "list"})
        )
        assert first.content == second.content

    async def test_invalid_action(self, make_dispatcher: Any) -> None:
        result = await make_dispatcher(MockProvider()).dispatch(
            ToolInvocation("todo_manager", {"action": "archive"})
        )
        assert _error(result)["error"] == "InvalidAction"

    async def test_add_without_item(self, make_dispatcher: Any) -> None:
        result = await make_dispatcher(MockProvider()).dispatch(
            ToolInvocation("todo_manager", {"action": "add"})
        )
        assert _error(result) == {
            "error": "MissingRequiredField",
            "details": "Tool 'todo_manager' requires field 'item'",
        }

    async def test_remove_unknown_id(self, make_dispatcher: Any) -> None:
        result = await make_dispatcher(MockProvider()).dispatch(
            ToolInvocation("todo_manager", {"action": "remove", "id": "42"})
        )
        assert _error(result) == {
            "error": "NotFound",
            "details": "To-do item not found: 42",
        }

    async def test_never_calls_model(self, make_dispatcher: Any) -> None:
        provider = MockProvider()
        await make_dispatcher(provider).dispatch(
            ToolInvocation("todo_manager", {"action": "list"})
        )
        assert provider.call_log == []
