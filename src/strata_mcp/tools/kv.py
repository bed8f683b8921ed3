"""Key-value tools (8).

Single-key: put, get, delete, list, history. Batch: put_many, get_many,
delete_many. A batch runs one command per item, in order, and stops at the
first failing item; items already written stay written.
"""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import (
    get_object_array,
    get_optional_string,
    get_optional_u64,
    get_string_arg,
    get_string_array,
    get_value_arg,
)
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_kv_put",
        description="Store a key-value pair. Returns the version number.",
        input_schema=object_schema(required={"key": "string", "value": "any"}),
    ),
    ToolDef(
        name="strata_kv_get",
        description="Get the value for a key. Returns null if the key doesn't exist.",
        input_schema=object_schema(required={"key": "string"}),
    ),
    ToolDef(
        name="strata_kv_delete",
        description="Delete a key. Returns true if the key existed.",
        input_schema=object_schema(required={"key": "string"}),
    ),
    ToolDef(
        name="strata_kv_list",
        description="List keys with optional prefix filter. Supports cursor-based pagination.",
        input_schema=object_schema(
            optional={"prefix": "string", "cursor": "string", "limit": "integer"}
        ),
    ),
    ToolDef(
        name="strata_kv_history",
        description="Get the full version history for a key.",
        input_schema=object_schema(required={"key": "string"}),
    ),
    ToolDef(
        name="strata_kv_put_many",
        description=(
            "Store several key-value pairs. items is an array of {key, value}. "
            "Returns one version per item. Not atomic: stops at the first failing item."
        ),
        input_schema=object_schema(required={"items": "array_object"}),
    ),
    ToolDef(
        name="strata_kv_get_many",
        description="Get several keys at once. Returns one versioned value (or null) per key.",
        input_schema=object_schema(required={"keys": "array_string"}),
    ),
    ToolDef(
        name="strata_kv_delete_many",
        description=(
            "Delete several keys. Returns one boolean per key (true if it existed). "
            "Not atomic: stops at the first failing key."
        ),
        input_schema=object_schema(required={"keys": "array_string"}),
    ),
]


def _put(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.KvPut(
        branch=session.branch_id(),
        space=session.space_id(),
        key=get_string_arg(args, "key"),
        value=get_value_arg(args, "value"),
    )
    return output_to_json(session.execute(command))


def _get(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.KvGet(
        branch=session.branch_id(), space=session.space_id(), key=get_string_arg(args, "key")
    )
    return output_to_json(session.execute(command))


def _delete(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.KvDelete(
        branch=session.branch_id(), space=session.space_id(), key=get_string_arg(args, "key")
    )
    return output_to_json(session.execute(command))


def _list(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.KvList(
        branch=session.branch_id(),
        space=session.space_id(),
        prefix=get_optional_string(args, "prefix"),
        cursor=get_optional_string(args, "cursor"),
        limit=get_optional_u64(args, "limit"),
    )
    return output_to_json(session.execute(command))


def _history(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.KvGetv(
        branch=session.branch_id(), space=session.space_id(), key=get_string_arg(args, "key")
    )
    return output_to_json(session.execute(command))


def _put_many(session: McpSession, args: dict[str, Any]) -> JsonValue:
    items = get_object_array(args, "items")
    pairs = [
        (
            get_string_arg(item, "key", prefix=f"items[{i}]."),
            get_value_arg(item, "value", prefix=f"items[{i}]."),
        )
        for i, item in enumerate(items)
    ]
    return [
        output_to_json(
            session.execute(
                cmd.KvPut(
                    branch=session.branch_id(), space=session.space_id(), key=key, value=value
                )
            )
        )
        for key, value in pairs
    ]


def _get_many(session: McpSession, args: dict[str, Any]) -> JsonValue:
    keys = get_string_array(args, "keys")
    return [
        output_to_json(
            session.execute(cmd.KvGet(branch=session.branch_id(), space=session.space_id(), key=k))
        )
        for k in keys
    ]


def _delete_many(session: McpSession, args: dict[str, Any]) -> JsonValue:
    keys = get_string_array(args, "keys")
    return [
        output_to_json(
            session.execute(
                cmd.KvDelete(branch=session.branch_id(), space=session.space_id(), key=k)
            )
        )
        for k in keys
    ]


_HANDLERS: dict[str, Handler] = {
    "strata_kv_put": _put,
    "strata_kv_get": _get,
    "strata_kv_delete": _delete,
    "strata_kv_list": _list,
    "strata_kv_history": _history,
    "strata_kv_put_many": _put_many,
    "strata_kv_get_many": _get_many,
    "strata_kv_delete_many": _delete_many,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
