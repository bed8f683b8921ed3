"""Tests for a database opened read-only."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from strata_mcp.engine import AccessMode, Strata, StrataError
from strata_mcp.errors import DatabaseError
from strata_mcp.session import McpSession
from strata_mcp.tools.registry import ToolRegistry


@pytest.fixture
def ro_session(read_only_db: Strata) -> McpSession:
    return McpSession(read_only_db)


class TestReadOnlyDatabase:
    def test_reads_work(self, ro_session: McpSession, registry: ToolRegistry) -> None:
        got = registry.dispatch(ro_session, "strata_kv_get", {"key": "seeded"})
        assert got["value"] == "hello"
        assert registry.dispatch(ro_session, "strata_kv_list", {}) == ["seeded"]
        assert registry.dispatch(ro_session, "strata_db_ping", {})["pong"] is True

    @pytest.mark.parametrize(
        ("tool", "arguments"),
        [
            ("strata_kv_put", {"key": "k", "value": 1}),
            ("strata_kv_delete", {"key": "seeded"}),
            ("strata_state_set", {"cell": "c", "value": 1}),
            ("strata_event_append", {"event_type": "t", "payload": {}}),
            ("strata_json_set", {"key": "d", "path": "$", "value": {}}),
            ("strata_space_create", {"space": "s"}),
            ("strata_branch_create", {"branch_id": "b"}),
            ("strata_branch_fork", {"destination": "b"}),
            ("strata_vector_create_collection", {"collection": "c", "dimension": 2}),
            ("strata_db_compact", {}),
            ("strata_retention_apply", {}),
        ],
    )
    def test_writes_are_denied(
        self,
        ro_session: McpSession,
        registry: ToolRegistry,
        tool: str,
        arguments: dict[str, Any],
    ) -> None:
        with pytest.raises(DatabaseError) as exc_info:
            registry.dispatch(ro_session, tool, arguments)
        assert exc_info.value.code == "ACCESS_DENIED"
        assert exc_info.value.message == "database is read-only"

    def test_data_is_unchanged_after_denied_write(
        self, ro_session: McpSession, registry: ToolRegistry
    ) -> None:
        with pytest.raises(DatabaseError):
            registry.dispatch(ro_session, "strata_kv_put", {"key": "seeded", "value": "new"})
        got = registry.dispatch(ro_session, "strata_kv_get", {"key": "seeded"})
        assert got["value"] == "hello"

    def test_flush_is_allowed(self, ro_session: McpSession, registry: ToolRegistry) -> None:
        assert registry.dispatch(ro_session, "strata_db_flush", {}) is None

    def test_export_is_allowed(
        self, ro_session: McpSession, registry: ToolRegistry, tmp_path: Path
    ) -> None:
        path = tmp_path / "ro.bundle"
        result = registry.dispatch(
            ro_session, "strata_bundle_export", {"branch": "default", "path": str(path)}
        )
        assert path.is_file()
        assert result["entry_count"] >= 1

    def test_open_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(StrataError) as exc_info:
            Strata.open(tmp_path / "missing", access_mode=AccessMode.READ_ONLY)
        assert exc_info.value.code == "IO_ERROR"
