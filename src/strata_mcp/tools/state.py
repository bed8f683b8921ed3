"""State cell tools (7): set, get, delete, init, cas, list, history."""

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

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_state_set",
        description="Set a state cell value (unconditional write). Returns the version number.",
        input_schema=object_schema(required={"cell": "string", "value": "any"}),
    ),
    ToolDef(
        name="strata_state_get",
        description=(
            "Get the current value of a state cell. Returns null if the cell doesn't exist. "
            "Pass as_of (microsecond timestamp) for time-travel reads."
        ),
        input_schema=object_schema(required={"cell": "string"}, optional={"as_of": "integer"}),
    ),
    ToolDef(
        name="strata_state_delete",
        description="Delete a state cell. Returns true if the cell existed.",
        input_schema=object_schema(required={"cell": "string"}),
    ),
    ToolDef(
        name="strata_state_init",
        description="Initialize a state cell only if it doesn't exist. Returns the version number.",
        input_schema=object_schema(required={"cell": "string", "value": "any"}),
    ),
    ToolDef(
        name="strata_state_cas",
        description=(
            "Compare-and-swap: update the cell only if expected_counter matches its current "
            "version (omit it to require that the cell does not exist). Returns the new "
            "version, or null if the compare failed."
        ),
        input_schema=object_schema(
            required={"cell": "string", "value": "any"}, optional={"expected_counter": "integer"}
        ),
    ),
    ToolDef(
        name="strata_state_list",
        description=(
            "List state cell names with optional prefix filter. "
            "Pass as_of (microsecond timestamp) for time-travel reads."
        ),
        input_schema=object_schema(optional={"prefix": "string", "as_of": "integer"}),
    ),
    ToolDef(
        name="strata_state_history",
        description=(
            "Get the full version history for a state cell. "
            "Pass as_of (microsecond timestamp) to get history up to that point."
        ),
        input_schema=object_schema(required={"cell": "string"}, optional={"as_of": "integer"}),
    ),
]


def _set(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.StateSet(
        branch=session.branch_id(),
        space=session.space_id(),
        cell=get_string_arg(args, "cell"),
        value=get_value_arg(args, "value"),
    )
    return output_to_json(session.execute(command))


def _get(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.StateGet(
        branch=session.branch_id(),
        space=session.space_id(),
        cell=get_string_arg(args, "cell"),
        as_of=get_optional_u64(args, "as_of"),
    )
    return output_to_json(session.execute(command))


def _delete(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.StateDelete(
        branch=session.branch_id(), space=session.space_id(), cell=get_string_arg(args, "cell")
    )
    return output_to_json(session.execute(command))


def _init(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.StateInit(
        branch=session.branch_id(),
        space=session.space_id(),
        cell=get_string_arg(args, "cell"),
        value=get_value_arg(args, "value"),
    )
    return output_to_json(session.execute(command))


def _cas(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.StateCas(
        branch=session.branch_id(),
        space=session.space_id(),
        cell=get_string_arg(args, "cell"),
        expected_counter=get_optional_u64(args, "expected_counter"),
        value=get_value_arg(args, "value"),
    )
    return output_to_json(session.execute(command))


def _list(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.StateList(
        branch=session.branch_id(),
        space=session.space_id(),
        prefix=get_optional_string(args, "prefix"),
        as_of=get_optional_u64(args, "as_of"),
    )
    return output_to_json(session.execute(command))


def _history(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.StateGetv(
        branch=session.branch_id(),
        space=session.space_id(),
        cell=get_string_arg(args, "cell"),
        as_of=get_optional_u64(args, "as_of"),
    )
    return output_to_json(session.execute(command))


_HANDLERS: dict[str, Handler] = {
    "strata_state_set": _set,
    "strata_state_get": _get,
    "strata_state_delete": _delete,
    "strata_state_init": _init,
    "strata_state_cas": _cas,
    "strata_state_list": _list,
    "strata_state_history": _history,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
