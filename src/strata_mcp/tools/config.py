"""Model configuration tool (1): strata_configure_model."""

from __future__ import annotations

from typing import Any

from strata_mcp.convert import JsonValue
from strata_mcp.engine import commands as cmd
from strata_mcp.session import McpSession
from strata_mcp.tools._helpers import get_optional_string, get_optional_u64, get_string_arg
from strata_mcp.tools.base import Handler, ToolDef, object_schema, route

TOOLS: list[ToolDef] = [
    ToolDef(
        name="strata_configure_model",
        description=(
            "Configure an inference model endpoint for intelligent search. "
            "When configured, search can expand queries using the model for better recall. "
            "Accepts any OpenAI-compatible endpoint (Ollama, vLLM, OpenAI)."
        ),
        input_schema=object_schema(
            required={"endpoint": "string", "model": "string"},
            optional={"api_key": "string", "timeout_ms": "integer"},
        ),
    ),
]


def _model(session: McpSession, args: dict[str, Any]) -> JsonValue:
    command = cmd.ConfigureModel(
        endpoint=get_string_arg(args, "endpoint"),
        model=get_string_arg(args, "model"),
        api_key=get_optional_string(args, "api_key"),
        timeout_ms=get_optional_u64(args, "timeout_ms"),
    )
    session.execute(command)
    return {"status": "ok"}


_HANDLERS: dict[str, Handler] = {"strata_configure_model": _model}


def dispatch(session: McpSession, name: str, args: dict[str, Any]) -> JsonValue:
    return route(_HANDLERS, session, name, args)
