"""Tests for the file-backed to-do store."""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from lexchat.core.errors import StorageError
from lexchat.tools.todo import TodoItem, TodoStore

if TYPE_CHECKING:
    from pathlib import Path


class TestTodoStore:
    def test_missing_file_is_empty(self, todo_store: TodoStore) -> None:
        assert todo_store.list() == []
        assert not todo_store.path.exists()

    def test_add_then_list(self, todo_store: TodoStore) -> None:
        item_id = todo_store.add("Review indemnity clause")
        assert todo_store.list() == [TodoItem(id=item_id, item="Review indemnity clause")]

    def test_preserves_insertion_order(self, todo_store: TodoStore) -> None:
        for text in ("first", "second", "third"):
            todo_store.add(text)
        assert [i.item for i in todo_store.list()] == ["first", "second", "third"]

    def test_ids_distinct_and_increasing(self, todo_store: TodoStore) -> None:
        ids = [todo_store.add(f"item {n}") for n in range(20)]
        assert len(set(ids)) == 20
        assert [int(i) for i in ids] == sorted(int(i) for i in ids)

    def test_remove(self, todo_store: TodoStore) -> None:
        keep = todo_store.add("keep")
        drop = todo_store.add("drop")
        assert todo_store.remove(drop) is True
        assert [i.id for i in todo_store.list()] == [keep]

    def test_remove_unknown(self, todo_store: TodoStore) -> None:
        todo_store.add("only")
        assert todo_store.remove("999") is False
        assert len(todo_store.list()) == 1

    def test_list_is_read_only(self, todo_store: TodoStore) -> None:
        todo_store.add("x")
        before = todo_store.path.read_text()
        todo_store.list()
        todo_store.list()
        assert todo_store.path.read_text() == before

    def test_file_format(self, todo_store: TodoStore) -> None:
        item_id = todo_store.add("Check signatures")
        data = json.loads(todo_store.path.read_text())
        assert data == [{"id": item_id, "item": "Check signatures"}]

    def test_creates_parent_dirs(self, tmp_path: Path) -> None:
        store = TodoStore(tmp_path / "nested" / "dir" / "todos.json")
        store.add("x")
        assert store.path.is_file()

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "todos.json"
        item_id = TodoStore(path).add("persisted")
        assert TodoStore(path).list() == [TodoItem(id=item_id, item="persisted")]

    def test_concurrent_adds_not_lost(self, todo_store: TodoStore) -> None:
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(todo_store.add, [f"t{n}" for n in range(40)]))
        items = todo_store.list()
        assert len(items) == 40
        assert len({i.id for i in items}) == 40


class TestTodoStoreErrors:
    def test_corrupt_file(self, todo_store: TodoStore) -> None:
        todo_store.path.write_text("{not json")
        with pytest.raises(StorageError, match="Cannot read"):
            todo_store.list()

    def test_not_an_array(self, todo_store: TodoStore) -> None:
        todo_store.path.write_text('{"id": "1"}')
        with pytest.raises(StorageError, match="JSON array"):
            todo_store.list()

    def test_malformed_record(self, todo_store: TodoStore) -> None:
        todo_store.path.write_text('[{"id": "1"}]')
        with pytest.raises(StorageError, match="Malformed record"):
            todo_store.add("x")

    def test_empty_file_is_empty_list(self, todo_store: TodoStore) -> None:
        todo_store.path.write_text("")
        assert todo_store.list() == []

    def test_non_utf8_file(self, todo_store: TodoStore) -> None:
        todo_store.path.write_bytes(b'[{"id": "1", "item": "\xff\xfe"}]')
        with pytest.raises(StorageError, match="Cannot read"):
            todo_store.list()

    def test_failed_write_leaves_no_temp_file(self, todo_store: TodoStore) -> None:
        todo_store.add("kept")
        before = todo_store.path.read_text()
        with (
            patch("lexchat.tools.todo.os.replace", side_effect=OSError("disk full")),
            pytest.raises(StorageError, match="disk full"),
        ):
            todo_store.add("lost")
        assert list(todo_store.path.parent.glob("*.tmp")) == []
        assert todo_store.path.read_text() == before
