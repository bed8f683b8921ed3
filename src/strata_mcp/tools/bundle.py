"""Bundle tools (3): export, import, validate."""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue, output_to_json
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import get_string_arg
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_bundle_export",
        description=(
            "Export a branch to a portable bundle file. The bundle contains all data "
            "and can be imported into another database. Returns the file path and statistics."
        ),
        input_schema=object_schema(required={"branch": "string", "path": "string"}),
    ),
    ToolDef(
        name="strata_bundle_import",
        description=(
            "Import a branch from a bundle file. Creates a new branch with all the "
            "data from the bundle. Returns the imported branch ID and statistics."
        ),
        input_schema=object_schema(required={"path": "string"}),
    ),
    ToolDef(
        name="strata_bundle_validate",
        description=(
            "Validate a bundle file without importing it. Checks format version, "
            "entry count, and checksums. Returns validation results."
        ),
        input_schema=object_schema(required={"path": "string"}),
    ),
]


def _export(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.BranchExport(
        branch_id=get_string_arg(args, "branch"), path=get_string_arg(args, "path")
    )
    return output_to_json(session.execute(command))


def _import(session: McpSession, args: dict[str, Any]) -> JsonValue:
    return output_to_json(session.execute(cmd.BranchImport(path=get_string_arg(args, "path"))))


def _validate(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.BranchBundleValidate(path=get_string_arg(args, "path"))
    return output_to_json(session.execute(command))


_HANDLERS: dict[str, Handler] = {
    "strata_bundle_export": _export,
    "strata_bundle_import": _import,
    "strata_bundle_validate": _validate,
}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
