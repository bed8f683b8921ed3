"""Retention tool (1): strata_retention_apply."""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_retention_apply",
        description=(
            "Apply the database's retention policy to the current branch, "
            "discarding versions older than the configured limit."
        ),
        input_schema=object_schema(),
    ),
]


def _apply(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.RetentionApply(branch=session.branch_id())))


_HANDLERS: dict[str, Handler] = {"strata_retention_apply": _apply}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
