"""File-backed to-do list for the ``todo_manager`` tool.

The whole list lives in one JSON file, an array of ``{"id", "item"}``
records. Every mutation reads the file, changes the list, and rewrites
it through a temp file. A process-wide lock serializes read-modify-write
so overlapping requests cannot lose each other's updates.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import asdict, dataclass
from pathlib import Path

from lexchat.core.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TodoItem:
    """One stored to-do entry."""

    id: str
    item: str


class TodoStore:
    """Ordered list of to-do items persisted to a JSON file."""

    _lock = threading.Lock()

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def add(self, text: str) -> str:
        """Append an item and return its id."""
        with self._lock:
            items = self._read()
            item_id = self._next_id(items)
            items.append(TodoItem(id=item_id, item=text))
            self._write(items)
        logger.info("Added to-do %s", item_id)
        return item_id

    def list(self) -> list[TodoItem]:
        with self._lock:
            return self._read()

    def remove(self, item_id: str) -> bool:
        """Delete an item. Returns False if no item has that id."""
        with self._lock:
            items = self._read()
            kept = [i for i in items if i.id != item_id]
            if len(kept) == len(items):
                return False
            self._write(kept)
        logger.info("Removed to-do %s", item_id)
        return True

    @staticmethod
    def _next_id(items: list[TodoItem]) -> str:
        """Time-derived id, kept strictly above the last stored id."""
        candidate = time.time_ns()
        if items and items[-1].id.isdigit():
            candidate = max(candidate, int(items[-1].id) + 1)
        return str(candidate)

    def _read(self) -> list[TodoItem]:
        if not self._path.exists():
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        except (OSError, ValueError) as e:
            msg = f"Cannot read to-do file {self._path}: {e}"
            raise StorageError(msg) from e
        if not isinstance(raw, list):
            msg = f"To-do file {self._path} does not hold a JSON array"
            raise StorageError(msg)
        try:
            return [TodoItem(id=str(r["id"]), item=str(r["item"])) for r in raw]
        except (KeyError, TypeError) as e:
            msg = f"Malformed record in to-do file {self._path}: {e}"
            raise StorageError(msg) from e

    def _write(self, items: list[TodoItem]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        except OSError as e:
            msg = f"Cannot write to-do file {self._path}: {e}"
            raise StorageError(msg) from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump([asdict(i) for i in items], f, indent=2)
            os.replace(tmp, self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            msg = f"Cannot write to-do file {self._path}: {e}"
            raise StorageError(msg) from e
