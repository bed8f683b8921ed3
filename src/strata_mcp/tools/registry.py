"""Tool registry: the full catalog plus prefix routing to category modules."""

from __future__ import annotations

from types import ModuleType
from typing import Any

from strata_mcp.convert import JsonValue
from strata_mcp.errors import UnknownToolError
from strata_mcp.session import McpSession
from strata_mcp.tools import (
    branch,
    bundle,
    config,
    database,
    event,
    jsondoc,
    kv,
    retention,
    search,
    space,
    state,
    txn,
    vector,
)
from strata_mcp.tools.base import ToolDef

# Catalog order as listed by tools/list.
CATEGORIES: tuple[ModuleType, ...] = (
    database,
    kv,
    state,
    event,
    jsondoc,
    space,
    branch,
    vector,
    txn,
    search,
    bundle,
    retention,
    config,
)

PREFIXES: dict[str, ModuleType] = {
    "strata_db_": database,
    "strata_kv_": kv,
    "strata_state_": state,
    "strata_event_": event,
    "strata_json_": jsondoc,
    "strata_space_": space,
    "strata_branch_": branch,
    "strata_vector_": vector,
    "strata_txn_": txn,
    "strata_search": search,
    "strata_configure_": config,
    "strata_bundle_": bundle,
    "strata_retention_": retention,
}


class ToolRegistry:
    """Immutable tool catalog built once at startup."""

    def __init__(self) -> None:
        tools: list[ToolDef] = []
        for category in CATEGORIES:
            tools.extend(category.TOOLS)
        self._tools = tuple(tools)
        self._by_name = {tool.name: tool for tool in self._tools}
        # Longest prefix first so a more specific prefix always wins.
        self._routes = sorted(PREFIXES.items(), key=lambda item: len(item[0]), reverse=True)

    @property
    def tools(self) -> tuple[ToolDef, ...]:
        return self._tools

    def get(self, name: str) -> ToolDef | None:
        return self._by_name.get(name)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def dispatch(self, session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
        """Route a tool call to its category; unknown names raise ``UnknownToolError``."""
        for prefix, category in self._routes:
            if name.startswith(prefix):
                return category.dispatch(session, name, args)
        raise UnknownToolError(name)
