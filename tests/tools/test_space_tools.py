"""Tests for the space tools and space addressing."""

from __future__ import annotations

import pytest

from strata_mcp.errors import DatabaseError
from strata_mcp.session import McpSession
from tests.conftest import CallTool


class TestSpaces:
    def test_default_space_listed(self, call: CallTool) -> None:
        assert call("strata_space_list") == ["default"]

    def test_create_exists_list(self, call: CallTool) -> None:
        assert call("strata_space_create", space="research") is None
        assert call("strata_space_exists", space="research") is True
        assert call("strata_space_exists", space="other") is False
        assert call("strata_space_list") == ["default", "research"]

    def test_delete_empty_space(self, call: CallTool) -> None:
        call("strata_space_create", space="scratch")
        assert call("strata_space_delete", space="scratch") is None
        assert call("strata_space_exists", space="scratch") is False

    def test_delete_non_empty_space_needs_force(self, call: CallTool) -> None:
        call("strata_space_switch", space="scratch")
        call("strata_kv_put", key="k", value=1)
        with pytest.raises(DatabaseError) as exc_info:
            call("strata_space_delete", space="scratch")
        assert exc_info.value.code == "CONSTRAINT_VIOLATION"
        assert call("strata_space_delete", space="scratch", force=True) is None

    def test_cannot_delete_default_space(self, call: CallTool) -> None:
        with pytest.raises(DatabaseError):
            call("strata_space_delete", space="default")


class TestSpaceSwitch:
    def test_switch_is_unchecked(self, call: CallTool, session: McpSession) -> None:
        result = call("strata_space_switch", space="brand-new")
        assert result == {"switched": True, "space": "brand-new"}
        assert session.space == "brand-new"

    def test_data_is_isolated_per_space(self, call: CallTool) -> None:
        call("strata_kv_put", key="shared", value="in default")
        call("strata_space_switch", space="other")
        assert call("strata_kv_get", key="shared") is None
        call("strata_kv_put", key="shared", value="in other")
        call("strata_space_switch", space="default")
        assert call("strata_kv_get", key="shared")["value"] == "in default"

    def test_writing_creates_space(self, call: CallTool) -> None:
        call("strata_space_switch", space="lazy")
        assert call("strata_space_exists", space="lazy") is False
        call("strata_kv_put", key="k", value=1)
        assert call("strata_space_exists", space="lazy") is True
