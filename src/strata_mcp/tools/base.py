"""Tool descriptors and per-category dispatch plumbing."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from mcp.types import Tool
from pydantic import BaseModel, Field

from strata_mcp.errors import UnknownToolError

if TYPE_CHECKING:
    from strata_mcp.convert import JsonValue
    from strata_mcp.session import McpSession

type Handler = Callable[[McpSession, dict[str, Any]], JsonValue]

# Short type names accepted by ``object_schema``.
_SCHEMA_TYPES: dict[str, dict[str, Any]] = {
    "string": {"type": "string"},
    "number": {"type": "number"},
    "integer": {"type": "integer"},
    "boolean": {"type": "boolean"},
    "any": {},
    "object": {"type": "object"},
    "array_number": {"type": "array", "items": {"type": "number"}},
    "array_string": {"type": "array", "items": {"type": "string"}},
    "array_object": {"type": "array", "items": {"type": "object"}},
}


class ToolDef(BaseModel):
    """A tool as listed by ``tools/list``."""

    model_config = {"frozen": True}

    name: str
    description: str
    input_schema: dict[str, Any] = Field(serialization_alias="inputSchema")

    def to_wire(self) -> dict[str, Any]:
        tool = Tool(name=self.name, description=self.description, inputSchema=self.input_schema)
        return tool.model_dump(by_alias=True, exclude_none=True)


def schema_type(short: str) -> dict[str, Any]:
    try:
        return dict(_SCHEMA_TYPES[short])
    except KeyError:
        raise ValueError(f"unknown schema type {short!r}") from None


def object_schema(
    required: Mapping[str, str | dict[str, Any]] | None = None,
    optional: Mapping[str, str | dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build a structural JSON Schema for a tool's arguments.

    Property types are short names (``"string"``, ``"array_number"``...) or a
    full schema dict for anything richer.
    """
    properties: dict[str, Any] = {}
    for name, kind in {**(required or {}), **(optional or {})}.items():
        properties[name] = schema_type(kind) if isinstance(kind, str) else kind
    return {
        "type": "object",
        "properties": properties,
        "required": list(required or {}),
    }


def route(
    handlers: Mapping[str, Handler],
    session: McpSession,
    name: str,
    args: dict[str, Any],
) -> JsonValue:
    """Exact-name dispatch inside one category."""
    handler = handlers.get(name)
    if handler is None:
        raise UnknownToolError(name)
    return handler(session, args)
