"""Shared pytest fixtures and test helpers for strata-mcp tests."""

from __future__ import annotations

import io
import json
import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from strata_mcp.engine import AccessMode, Strata
from strata_mcp.engine import commands as cmd
from strata_mcp.protocol import JsonRpcResponse
from strata_mcp.server import McpServer
from strata_mcp.session import McpSession
from strata_mcp.tools.registry import ToolRegistry

type CallTool = Callable[..., Any]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep STRATA_MCP_* variables from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("STRATA_MCP_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def db() -> Generator[Strata]:
    """Fresh in-memory database."""
    database = Strata.cache()
    try:
        yield database
    finally:
        database.close()


@pytest.fixture
def session(db: Strata) -> McpSession:
    return McpSession(db)


@pytest.fixture(scope="session")
def registry() -> ToolRegistry:
    """The tool catalog is immutable, so one instance serves every test."""
    return ToolRegistry()


@pytest.fixture
def call(session: McpSession, registry: ToolRegistry) -> CallTool:
    """Invoke a tool by name with keyword arguments; returns its JSON result."""

    def _call(name: str, **arguments: Any) -> Any:
        return registry.dispatch(session, name, arguments)

    return _call


@pytest.fixture
def server(session: McpSession, registry: ToolRegistry) -> McpServer:
    return McpServer(session, registry)


@pytest.fixture
def read_only_db(tmp_path: Path) -> Generator[Strata]:
    """A database on disk holding one kv key, reopened read-only."""
    root = tmp_path / "ro-db"
    writer = Strata.open(root)
    McpSession(writer).execute(cmd.KvPut(key="seeded", value="hello"))
    writer.close()
    database = Strata.open(root, access_mode=AccessMode.READ_ONLY)
    try:
        yield database
    finally:
        database.close()


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


def request_line(method: str, params: Any = None, id: Any = 1) -> str:
    """Encode a JSON-RPC request as one input line."""
    message: dict[str, Any] = {"jsonrpc": "2.0", "id": id, "method": method}
    if params is not None:
        message["params"] = params
    return json.dumps(message)


def tool_call(server: McpServer, name: str, arguments: Any = None, id: Any = 1) -> JsonRpcResponse:
    """Send a ``tools/call`` request through the full line handler."""
    params: dict[str, Any] = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return server.handle_line(request_line("tools/call", params, id))


def tool_result(response: JsonRpcResponse) -> Any:
    """Decode the JSON text payload of a successful ``tools/call`` response."""
    assert response.error is None, response.error
    content = response.result["content"]
    assert len(content) == 1
    assert content[0]["type"] == "text"
    return json.loads(content[0]["text"])


def run_lines(server: McpServer, *lines: str) -> list[dict[str, Any]]:
    """Feed *lines* through ``server.run`` and decode every output line."""
    reader = io.StringIO("".join(f"{line}\n" for line in lines))
    writer = io.StringIO()
    server.run(reader, writer)
    return [json.loads(line) for line in writer.getvalue().splitlines()]
