"""Tool registry: the fixed, ordered set of tools the model may call."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lexchat.core.errors import UnknownToolError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lexchat.tools.base import ToolSpec


class ToolRegistry:
    """Read-only catalog of tools, keyed by name.

    Built once at startup. Order of ``list_tools()`` is the order the
    specs were given in, which is also the order shown to the model.
    """

    def __init__(self, specs: Iterable[ToolSpec]) -> None:
        self._tools: dict[str, ToolSpec] = {}
        for spec in specs:
            if spec.name in self._tools:
                msg = f"Tool already registered: {spec.name}"
                raise ValueError(msg)
            self._tools[spec.name] = spec

    def list_tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    def describe(self, name: str) -> ToolSpec:
        """Get a tool by name.

        Raises:
            UnknownToolError: If the tool is not found.
        """
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def list_names(self) -> list[str]:
        return list(self._tools)

    def render_catalog(self) -> str:
        """One ``name: description`` line per tool, for the system prompt."""
        return "\n".join(f"{t.name}: {t.description}" for t in self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools


def default_registry() -> ToolRegistry:
    """Registry over the built-in legal tool catalog."""
    from lexchat.tools.catalog import LEGAL_TOOLS

    return ToolRegistry(LEGAL_TOOLS)
