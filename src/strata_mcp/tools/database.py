"""Database administration tools (5): ping, info, flush, compact, time_range."""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_db_ping",
        description=(
            "Ping the database to check connectivity and get version info. "
            "Use this as a health check before starting work."
        ),
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_db_info",
        description=(
            "Get database statistics including version, uptime in seconds, branch count, "
            "and total keys. Useful for monitoring and capacity planning."
        ),
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_db_flush",
        description=(
            "Force pending writes to disk immediately. Use this before critical "
            "operations or shutdown."
        ),
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_db_compact",
        description=(
            "Trigger storage compaction to reclaim space from deleted data. "
            "Requires a writable database."
        ),
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_db_time_range",
        description=(
            "Get the available time range for the current branch. Returns oldest_ts and "
            "latest_ts (microsecond timestamps) for use with as_of time-travel reads. "
            "Both are null if the branch has no data."
        ),
        input_schema=object_schema(),
    ),
]


def _ping(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.Ping()))


def _info(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.Info()))


def _flush(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.Flush()))


def _compact(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.Compact()))


def _time_range(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.TimeRange(branch=session.branch_id())))


_HANDLERS: dict[str, Handler] = {
    "strata_db_ping": _ping,
    "strata_db_info": _info,
    "strata_db_flush": _flush,
    "strata_db_compact": _compact,
    "strata_db_time_range": _time_range,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
