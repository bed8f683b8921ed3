"""Space tools (5): list, create, delete, exists, switch.

``switch`` does not check that the space exists: writes create spaces on
demand. Branch switching, by contrast, is verified.
"""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import get_optional_bool, get_string_arg
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_space_list",
        description="List all spaces in the current branch.",
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_space_create",
        description="Create a new space explicitly.",
        input_schema=object_schema(required={"space": "string"}),
    ),
    ToolDef(
        name="strata_space_delete",
        description="Delete a space. Must be empty unless force=true.",
        input_schema=object_schema(required={"space": "string"}, optional={"force": "boolean"}),
    ),
    ToolDef(
        name="strata_space_exists",
        description="Check if a space exists in the current branch. Returns true/false.",
        input_schema=object_schema(required={"space": "string"}),
    ),
    ToolDef(
        name="strata_space_switch",
        description=(
            "Switch the session's current space context. "
            "All subsequent operations will use this space."
        ),
        input_schema=object_schema(required={"space": "string"}),
    ),
]


def _list(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.SpaceList(branch=session.branch_id())))


def _create(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.SpaceCreate(branch=session.branch_id(), space=get_string_arg(args, "space"))
    return output_to_json(session.execute(command))


def _delete(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.SpaceDelete(
        branch=session.branch_id(),
        space=get_string_arg(args, "space"),
        force=bool(get_optional_bool(args, "force")),
    )
    return output_to_json(session.execute(command))


def _exists(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.SpaceExists(branch=session.branch_id(), space=get_string_arg(args, "space"))
    return output_to_json(session.execute(command))


def _switch(session: McpSession, args: dict[str, Any]) -> JsonValue:
    space = get_string_arg(args, "space")
    session.switch_space(space)
    return {"switched": True, "space": space}


_HANDLERS: dict[str, Handler] = {
    "strata_space_list": _list,
    "strata_space_create": _create,
    "strata_space_delete": _delete,
    "strata_space_exists": _exists,
    "strata_space_switch": _switch,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
