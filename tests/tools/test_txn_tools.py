"""Tests for the transaction tools and session transaction tracking."""

from __future__ import annotations

import pytest

from strata_mcp.errors import DatabaseError
from strata_mcp.session import McpSession
from tests.conftest import CallTool


class TestTransactions:
    def test_begin_commit(self, call: CallTool, session: McpSession) -> None:
        assert call("strata_txn_begin") == {"status": "begun"}
        assert session.in_transaction is True
        assert call("strata_txn_active") is True
        call("strata_kv_put", key="k", value=1)
        result = call("strata_txn_commit")
        assert result["status"] == "committed"
        assert isinstance(result["version"], int)
        assert session.in_transaction is False
        assert call("strata_kv_get", key="k")["value"] == 1

    def test_rollback_discards_writes(self, call: CallTool, session: McpSession) -> None:
        call("strata_kv_put", key="kept", value=1)
        call("strata_txn_begin")
        call("strata_kv_put", key="kept", value=2)
        call("strata_kv_put", key="dropped", value=3)
        assert call("strata_txn_rollback") == {"status": "aborted"}
        assert session.in_transaction is False
        assert call("strata_kv_get", key="kept")["value"] == 1
        assert call("strata_kv_get", key="dropped") is None

    def test_info(self, call: CallTool) -> None:
        assert call("strata_txn_info") is None
        call("strata_txn_begin")
        info = call("strata_txn_info")
        assert info["status"] == "active"
        assert isinstance(info["id"], int)
        assert isinstance(info["started_at"], int)

    def test_commit_without_transaction(self, call: CallTool) -> None:
        with pytest.raises(DatabaseError) as exc_info:
            call("strata_txn_commit")
        assert exc_info.value.code == "TXN_NOT_ACTIVE"

    def test_double_begin(self, call: CallTool, session: McpSession) -> None:
        call("strata_txn_begin")
        with pytest.raises(DatabaseError) as exc_info:
            call("strata_txn_begin")
        assert exc_info.value.code == "TXN_ALREADY_ACTIVE"
        assert session.in_transaction is True

    def test_read_only_transaction_rejects_writes(self, call: CallTool) -> None:
        call("strata_kv_put", key="k", value=1)
        call("strata_txn_begin", read_only=True)
        assert call("strata_kv_get", key="k")["value"] == 1
        with pytest.raises(DatabaseError) as exc_info:
            call("strata_kv_put", key="k", value=2)
        assert exc_info.value.code == "ACCESS_DENIED"

    def test_failed_rollback_leaves_flag_unset(self, call: CallTool, session: McpSession) -> None:
        with pytest.raises(DatabaseError):
            call("strata_txn_rollback")
        assert session.in_transaction is False
