"""Branch tools (9): create, get, list, exists, delete, fork, diff, merge, switch.

Fork, diff and merge go through the database's branch API rather than the
command session; their JSON shapes are built here.
"""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json, value_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.engine.types import BranchDiffEntry, MergeConflict, MergeStrategy
from strata_mcp.errors import InvalidArgumentError
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import (
    get_optional_string,
    get_optional_u64,
    get_optional_value,
    get_string_arg,
)
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_branch_create",
        description=(
            "Create a new empty branch. Optionally specify branch_id (UUID or name) "
            "and metadata; a UUID is generated when branch_id is omitted."
        ),
        input_schema=object_schema(optional={"branch_id": "string", "metadata": "any"}),
    ),
    ToolDef(
        name="strata_branch_get",
        description="Get information about a specific branch. Returns null if it doesn't exist.",
        input_schema=object_schema(required={"branch": "string"}),
    ),
    ToolDef(
        name="strata_branch_list",
        description="List all branches with optional pagination.",
        input_schema=object_schema(optional={"limit": "integer", "offset": "integer"}),
    ),
    ToolDef(
        name="strata_branch_exists",
        description="Check if a branch exists. Returns true/false.",
        input_schema=object_schema(required={"branch": "string"}),
    ),
    ToolDef(
        name="strata_branch_delete",
        description="Delete a branch and all its data. Cannot delete the 'default' branch.",
        input_schema=object_schema(required={"branch": "string"}),
    ),
    ToolDef(
        name="strata_branch_fork",
        description="Fork the current branch to a new branch, copying all data.",
        input_schema=object_schema(required={"destination": "string"}),
    ),
    ToolDef(
        name="strata_branch_diff",
        description="Compare two branches and return their differences.",
        input_schema=object_schema(required={"branch_a": "string", "branch_b": "string"}),
    ),
    ToolDef(
        name="strata_branch_merge",
        description=(
            "Merge a source branch into the current branch. "
            "Strategy: 'last_writer_wins' (default) or 'strict'."
        ),
        input_schema=object_schema(required={"source": "string"}, optional={"strategy": "string"}),
    ),
    ToolDef(
        name="strata_branch_switch",
        description=(
            "Switch the session's current branch context. "
            "All subsequent operations will use this branch."
        ),
        input_schema=object_schema(required={"branch": "string"}),
    ),
]


def parse_strategy(raw: str | None) -> MergeStrategy:
    if raw is None or raw == "last_writer_wins":
        return MergeStrategy.LAST_WRITER_WINS
    if raw == "strict":
        return MergeStrategy.STRICT
    raise InvalidArgumentError(
        "strategy", f"Unknown merge strategy '{raw}'. Use 'last_writer_wins' or 'strict'."
    )


def _diff_entry(e: BranchDiffEntry) -> dict[str, JsonValue]:
    return {
        "key": e.key,
        "primitive": e.primitive.label,
        "space": e.space,
        "value_a": value_to_json(e.value_a),
        "value_b": value_to_json(e.value_b),
    }


def _conflict(c: MergeConflict) -> dict[str, JsonValue]:
    return {
        "key": c.key,
        "primitive": c.primitive.label,
        "space": c.space,
        "source_value": value_to_json(c.source_value),
        "target_value": value_to_json(c.target_value),
    }


def _create(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.BranchCreate(
        branch_id=get_optional_string(args, "branch_id"),
        metadata=get_optional_value(args, "metadata"),
    )
    return output_to_json(session.execute(command))


def _get(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.BranchGet(branch=get_string_arg(args, "branch"))))


def _list(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.BranchList(
        limit=get_optional_u64(args, "limit"),
        offset=get_optional_u64(args, "offset"),
    )
    return output_to_json(session.execute(command))


def _exists(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.BranchExists(branch=get_string_arg(args, "branch"))
    return output_to_json(session.execute(command))


def _delete(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.BranchDelete(branch=get_string_arg(args, "branch"))
    return output_to_json(session.execute(command))


def _fork(session: McpSession, args: dict[str, Any]) -> JsonValue:
    info = session.fork_branch(get_string_arg(args, "destination"))
    return {
        "source": info.source,
        "destination": info.destination,
        "keys_copied": info.keys_copied,
    }


def _diff(session: McpSession, args: dict[str, Any]) -> JsonValue:
    diff = session.diff_branches(
        get_string_arg(args, "branch_a"), get_string_arg(args, "branch_b")
    )
    return {
        "branch_a": diff.branch_a,
        "branch_b": diff.branch_b,
        "summary": {
            "total_added": diff.summary.total_added,
            "total_removed": diff.summary.total_removed,
            "total_modified": diff.summary.total_modified,
        },
        "spaces": [
            {
                "space": s.space,
                "added": [_diff_entry(e) for e in s.added],
                "removed": [_diff_entry(e) for e in s.removed],
                "modified": [_diff_entry(e) for e in s.modified],
            }
            for s in diff.spaces
        ],
    }


def _merge(session: McpSession, args: dict[str, Any]) -> JsonValue:
    source = get_string_arg(args, "source")
    strategy = parse_strategy(get_optional_string(args, "strategy"))
    info = session.merge_branch(source, strategy)
    return {
        "keys_applied": info.keys_applied,
        "spaces_merged": info.spaces_merged,
        "conflicts": [_conflict(c) for c in info.conflicts],
    }


def _switch(session: McpSession, args: dict[str, Any]) -> JsonValue:
    branch = get_string_arg(args, "branch")
    session.switch_branch(branch)
    return {"switched": True, "branch": branch}


_HANDLERS: dict[str, Handler] = {
    "strata_branch_create": _create,
    "strata_branch_get": _get,
    "strata_branch_list": _list,
    "strata_branch_exists": _exists,
    "strata_branch_delete": _delete,
    "strata_branch_fork": _fork,
    "strata_branch_diff": _diff,
    "strata_branch_merge": _merge,
    "strata_branch_switch": _switch,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
