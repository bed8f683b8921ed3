"""Cross-primitive search tool (1): strata_search."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.engine.types import SearchMode, SearchTimeRange
from strata_mcp.errors import InvalidArgumentError
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import (
    get_optional_bool,
    get_optional_object,
    get_optional_string,
    get_optional_string_array,
    get_optional_u64,
    get_string_arg,
)
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

_TIME_RANGE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "start": {"type": "string", "description": "ISO-8601 start (inclusive)"},
        "end": {"type": "string", "description": "ISO-8601 end (inclusive)"},
    },
    "required": ["start", "end"],
}

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_search",
        description=(
            "Search across multiple primitives (kv, json, state, event) for matching content. "
            "Returns ranked results with scores and snippets. Use this to find data when you "
            "don't know which primitive contains it."
        ),
        input_schema=object_schema(
            required={"query": "string"},
            optional={
                "k": "integer",
                "primitives": "array_string",
                "mode": {"type": "string", "enum": [m.value for m in SearchMode]},
                "expand": "boolean",
                "rerank": "boolean",
                "time_range": _TIME_RANGE_SCHEMA,
            },
        ),
    ),
]


def parse_mode(raw: str | None) -> SearchMode | None:
    if raw is None:
        return None
    try:
        return SearchMode(raw)
    except ValueError:
        raise InvalidArgumentError(
            "mode", f"Unknown search mode '{raw}'. Use 'keyword' or 'hybrid'."
        ) from None


_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def _timestamp_micros(raw: Any, label: str) -> int:
    if not isinstance(raw, str):
        raise InvalidArgumentError(label, "expected an ISO-8601 string")
    try:
        moment = datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidArgumentError(label, f"invalid ISO-8601 timestamp '{raw}'") from None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return (moment - _EPOCH) // timedelta(microseconds=1)


def parse_time_range(args: dict[str, Any]) -> SearchTimeRange | None:
    raw = get_optional_object(args, "time_range")
    if raw is None:
        return None
    start = _timestamp_micros(raw.get("start"), "time_range.start")
    end = _timestamp_micros(raw.get("end"), "time_range.end")
    if start > end:
        raise InvalidArgumentError("time_range", "start must not be after end")
    return SearchTimeRange(start=start, end=end)


def _search(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.Search(
        branch=session.branch_id(),
        space=session.space_id(),
        query=get_string_arg(args, "query"),
        k=get_optional_u64(args, "k"),
        primitives=get_optional_string_array(args, "primitives"),
        mode=parse_mode(get_optional_string(args, "mode")),
        expand=get_optional_bool(args, "expand"),
        rerank=get_optional_bool(args, "rerank"),
        time_range=parse_time_range(args),
    )
    return output_to_json(session.execute(command))


_HANDLERS: dict[str, Handler] = {"strata_search": _search}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
