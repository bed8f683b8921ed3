"""Transaction tools (5): begin, commit, rollback, info, active."""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.engine.types import TxnOptions
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import get_optional_bool
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_txn_begin",
        description=(
            "Begin a new transaction on the current branch. "
            "Operations within the transaction are atomic."
        ),
        input_schema=object_schema(optional={"read_only": "boolean"}),
    ),
    ToolDef(
        name="strata_txn_commit",
        description="Commit the current transaction, making all changes permanent.",
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_txn_rollback",
        description="Rollback the current transaction, discarding all changes.",
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_txn_info",
        description=(
            "Get information about the current transaction. "
            "Returns null if no transaction is active."
        ),
        input_schema=object_schema(),
    ),
    ToolDef(
        name="strata_txn_active",
        description="Check if a transaction is currently active. Returns true/false.",
        input_schema=object_schema(),
    ),
]


def _begin(session: McpSession, args: dict[str, Any]) -> JsonValue:
    read_only = get_optional_bool(args, "read_only")
    command = cmd.TxnBegin(
        branch=session.branch_id(),
        options=None if read_only is None else TxnOptions(read_only=read_only),
    )
    return output_to_json(session.execute(command))


def _commit(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.TxnCommit()))


def _rollback(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.TxnRollback()))


def _info(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.TxnInfo()))


def _active(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.TxnIsActive()))


_HANDLERS: dict[str, Handler] = {
    "strata_txn_begin": _begin,
    "strata_txn_commit": _commit,
    "strata_txn_rollback": _rollback,
    "strata_txn_info": _info,
    "strata_txn_active": _active,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
