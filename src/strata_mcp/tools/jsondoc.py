"""JSON document tools (5): set, get, delete, list, history.

Paths use JSONPath syntax; ``$`` addresses the whole document.
"""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import (
    get_optional_string,
    get_optional_u64,
    get_string_arg,
    get_value_arg,
)
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

DEFAULT_LIST_LIMIT = 100

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_json_set",
        description=(
            "Set a value at a JSONPath in a document. Creates the document if it doesn't "
            "exist. Returns the version number."
        ),
        input_schema=object_schema(required={"key": "string", "path": "string", "value": "any"}),
    ),
    ToolDef(
        name="strata_json_get",
        description=(
            "Get a value at a JSONPath from a document. Use '$' for the entire document. "
            "Returns null if not found."
        ),
        input_schema=object_schema(required={"key": "string", "path": "string"}),
    ),
    ToolDef(
        name="strata_json_delete",
        description=(
            "Delete a value at a JSONPath ('$' deletes the whole document). "
            "Returns the count of elements removed (0 or 1)."
        ),
        input_schema=object_schema(required={"key": "string", "path": "string"}),
    ),
    ToolDef(
        name="strata_json_list",
        description=(
            "List JSON document keys with optional prefix filter and cursor-based pagination. "
            "limit defaults to 100; cursor is returned only when more keys remain."
        ),
        input_schema=object_schema(
            optional={"prefix": "string", "cursor": "string", "limit": "integer"}
        ),
    ),
    ToolDef(
        name="strata_json_history",
        description="Get the full version history for a JSON document.",
        input_schema=object_schema(required={"key": "string"}),
    ),
]


def _set(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.JsonSet(
        branch=session.branch_id(),
        space=session.space_id(),
        key=get_string_arg(args, "key"),
        path=get_string_arg(args, "path"),
        value=get_value_arg(args, "value"),
    )
    return output_to_json(session.execute(command))


def _get(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.JsonGet(
        branch=session.branch_id(),
        space=session.space_id(),
        key=get_string_arg(args, "key"),
        path=get_string_arg(args, "path"),
    )
    return output_to_json(session.execute(command))


def _delete(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.JsonDelete(
        branch=session.branch_id(),
        space=session.space_id(),
        key=get_string_arg(args, "key"),
        path=get_string_arg(args, "path"),
    )
    return output_to_json(session.execute(command))


def _list(session: McpSession, args: dict[str, Any]) -> JsonValue:
    limit = get_optional_u64(args, "limit")
    command = cmd.JsonList(
        branch=session.branch_id(),
        space=session.space_id(),
        prefix=get_optional_string(args, "prefix"),
        cursor=get_optional_string(args, "cursor"),
        limit=DEFAULT_LIST_LIMIT if limit is None else limit,
    )
    return output_to_json(session.execute(command))


def _history(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.JsonGetv(
        branch=session.branch_id(), space=session.space_id(), key=get_string_arg(args, "key")
    )
    return output_to_json(session.execute(command))


_HANDLERS: dict[str, Handler] = {
    "strata_json_set": _set,
    "strata_json_get": _get,
    "strata_json_delete": _delete,
    "strata_json_list": _list,
    "strata_json_history": _history,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
