"""Tests for the event log tools."""

from __future__ import annotations

import pytest

from strata_mcp.errors import DatabaseError, MissingArgumentError
from tests.conftest import CallTool


class TestEventLog:
    def test_append_returns_sequence(self, call: CallTool) -> None:
        first = call("strata_event_append", event_type="user_action", payload={"action": "login"})
        second = call("strata_event_append", event_type="user_action", payload={"action": "view"})
        assert first == {"version": 0}
        assert second == {"version": 1}
        assert call("strata_event_len") == 2

    def test_len_of_empty_log(self, call: CallTool) -> None:
        assert call("strata_event_len") == 0

    def test_get_by_sequence(self, call: CallTool) -> None:
        call("strata_event_append", event_type="click", payload={"x": 1})
        result = call("strata_event_get", sequence=0)
        assert result["value"] == {"x": 1}
        assert result["version"] == 0

    def test_get_out_of_range_is_null(self, call: CallTool) -> None:
        assert call("strata_event_get", sequence=5) is None

    def test_list_by_type(self, call: CallTool) -> None:
        call("strata_event_append", event_type="a", payload=1)
        call("strata_event_append", event_type="b", payload=2)
        call("strata_event_append", event_type="a", payload=3)
        events = call("strata_event_list", event_type="a")
        assert [e["value"] for e in events] == [1, 3]

    def test_list_paginated(self, call: CallTool) -> None:
        for i in range(5):
            call("strata_event_append", event_type="tick", payload=i)
        page = call("strata_event_list", event_type="tick", limit=2)
        assert [e["value"] for e in page] == [0, 1]
        rest = call("strata_event_list", event_type="tick", after_sequence=page[-1]["version"])
        assert [e["value"] for e in rest] == [2, 3, 4]

    def test_null_payload_allowed(self, call: CallTool) -> None:
        call("strata_event_append", event_type="empty", payload=None)
        assert call("strata_event_get", sequence=0)["value"] is None

    def test_missing_payload(self, call: CallTool) -> None:
        with pytest.raises(MissingArgumentError):
            call("strata_event_append", event_type="x")

    def test_empty_event_type_rejected(self, call: CallTool) -> None:
        with pytest.raises(DatabaseError) as exc_info:
            call("strata_event_append", event_type="", payload=1)
        assert exc_info.value.code == "INVALID_INPUT"

    def test_events_are_per_space(self, call: CallTool) -> None:
        call("strata_event_append", event_type="a", payload=1)
        call("strata_space_switch", space="other")
        assert call("strata_event_len") == 0
