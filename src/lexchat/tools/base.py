"""Tool descriptors, invocations, and results.

``ToolSpec`` is the static description of a tool shown to the model;
``ToolInvocation`` is one parsed request to run it; ``ToolResult`` is
the normalized outcome the dispatcher hands back. Results never raise:
a failure is a result with an error kind.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from lexchat.core.errors import ToolErrorKind

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True)
class ToolParameter:
    """One named input field of a tool."""

    name: str
    description: str
    type: str = "string"


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """Schema definition for a tool."""

    name: str
    description: str
    properties: tuple[ToolParameter, ...] = ()
    required: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        declared = {p.name for p in self.properties}
        undeclared = self.required - declared
        if undeclared:
            msg = f"Tool '{self.name}' requires undeclared fields: {sorted(undeclared)}"
            raise ValueError(msg)

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON Schema for the tool's input, in declaration order."""
        return {
            "type": "object",
            "properties": {
                p.name: {"type": p.type, "description": p.description}
                for p in self.properties
            },
            "required": [p.name for p in self.properties if p.name in self.required],
        }

    def accepts(self, field_name: str) -> bool:
        return any(p.name == field_name for p in self.properties)

    def missing_fields(self, values: Mapping[str, str]) -> list[str]:
        """Required fields that are absent or blank, in declaration order."""
        return [
            p.name
            for p in self.properties
            if p.name in self.required and not str(values.get(p.name, "")).strip()
        ]


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True, slots=True)
class ToolInvocation:
    """A request to run one tool, parsed from the model's stream."""

    name: str
    input: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_arguments(cls, name: str, arguments: Mapping[str, Any]) -> ToolInvocation:
        """Build an invocation, coercing argument values to strings."""
        return cls(name=name, input={k: _as_text(v) for k, v in arguments.items()})

    def with_defaults(self, defaults: Mapping[str, str]) -> ToolInvocation:
        """Return a copy with ``defaults`` filled in where input is blank."""
        merged = dict(self.input)
        for key, value in defaults.items():
            if not merged.get(key, "").strip():
                merged[key] = value
        return ToolInvocation(name=self.name, input=merged)


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of a dispatched invocation."""

    tool_name: str
    ok: bool
    content: str = ""
    error_kind: ToolErrorKind | None = None
    detail: str = ""
    data: dict[str, Any] | None = field(default=None, compare=False)

    @classmethod
    def success(
        cls, tool_name: str, content: str, data: dict[str, Any] | None = None
    ) -> ToolResult:
        return cls(tool_name=tool_name, ok=True, content=content, data=data)

    @classmethod
    def failure(cls, tool_name: str, kind: ToolErrorKind, detail: str) -> ToolResult:
        return cls(tool_name=tool_name, ok=False, error_kind=kind, detail=detail)

    @property
    def payload(self) -> str:
        """Normalized string form, suitable to fold back into a conversation."""
        if self.ok:
            return self.content
        assert self.error_kind is not None
        return json.dumps(
            {"error": self.error_kind.value, "details": self.detail}, indent=2
        )
