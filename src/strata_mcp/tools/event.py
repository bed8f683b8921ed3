"""Event log tools (4): append, get, list, len."""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import (
    get_optional_u64,
    get_string_arg,
    get_u64_arg,
    get_value_arg,
)
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_event_append",
        description="Append an event to the log. Returns the sequence number (version).",
        input_schema=object_schema(required={"event_type": "string", "payload": "any"}),
    ),
    ToolDef(
        name="strata_event_get",
        description="Get an event by its sequence number. Returns null if not found.",
        input_schema=object_schema(required={"sequence": "integer"}),
    ),
    ToolDef(
        name="strata_event_list",
        description="List events of a specific type with optional pagination.",
        input_schema=object_schema(
            required={"event_type": "string"},
            optional={"limit": "integer", "after_sequence": "integer"},
        ),
    ),
    ToolDef(
        name="strata_event_len",
        description="Get the total count of events in the log.",
        input_schema=object_schema(),
    ),
]


def _append(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.EventAppend(
        branch=session.branch_id(),
        space=session.space_id(),
        event_type=get_string_arg(args, "event_type"),
        payload=get_value_arg(args, "payload"),
    )
    return output_to_json(session.execute(command))


def _get(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.EventGet(
        branch=session.branch_id(),
        space=session.space_id(),
        sequence=get_u64_arg(args, "sequence"),
    )
    return output_to_json(session.execute(command))


def _list(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.EventGetByType(
        branch=session.branch_id(),
        space=session.space_id(),
        event_type=get_string_arg(args, "event_type"),
        limit=get_optional_u64(args, "limit"),
        after_sequence=get_optional_u64(args, "after_sequence"),
    )
    return output_to_json(session.execute(command))


def _len(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.EventLen(branch=session.branch_id(), space=session.space_id())
    return output_to_json(session.execute(command))


_HANDLERS: dict[str, Handler] = {
    "strata_event_append": _append,
    "strata_event_get": _get,
    "strata_event_list": _list,
    "strata_event_len": _len,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
