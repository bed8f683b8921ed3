"""Tests for JSON <-> engine value conversion and output flattening."""

from __future__ import annotations

import pytest

from strata_mcp.convert import (
    I64_MAX,
    I64_MIN,
    json_to_value,
    output_to_json,
    supported_outputs,
    value_to_json,
)
from strata_mcp.engine import outputs as out
from strata_mcp.engine.types import (
    BranchInfo,
    BranchStatus,
    CollectionInfo,
    DistanceMetric,
    SearchHit,
    TxnInfoRecord,
    TxnStatus,
    VectorMatch,
    VectorRecord,
    VersionedBranchInfo,
    VersionedValue,
)
from strata_mcp.errors import InvalidArgumentError


class TestJsonToValue:
    @pytest.mark.parametrize("raw", [None, True, False, "text", 0, -5, 1.5, I64_MIN, I64_MAX])
    def test_scalars_pass_through(self, raw: object) -> None:
        assert json_to_value(raw) == raw

    def test_bool_is_not_int(self) -> None:
        assert json_to_value(True) is True
        assert json_to_value(1) is not True

    def test_large_int_becomes_float(self) -> None:
        value = json_to_value(I64_MAX + 1)
        assert isinstance(value, float)
        assert value == float(I64_MAX + 1)

    def test_huge_int_is_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError, match="Number out of range"):
            json_to_value(10**400)

    @pytest.mark.parametrize("raw", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_is_rejected(self, raw: float) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            json_to_value(raw, "payload")
        assert exc_info.value.name == "payload"

    def test_nested(self) -> None:
        raw = {"a": [1, {"b": None}], "c": {"d": "e"}}
        assert json_to_value(raw) == raw

    def test_unsupported_type(self) -> None:
        with pytest.raises(InvalidArgumentError, match="unsupported JSON type"):
            json_to_value({1, 2})


class TestValueToJson:
    def test_bytes_are_base64(self) -> None:
        assert value_to_json(b"hello") == "aGVsbG8="

    def test_tuples_become_lists(self) -> None:
        assert value_to_json((1, (2, 3))) == [1, [2, 3]]

    def test_nested_bytes(self) -> None:
        assert value_to_json({"raw": [b"\x00"]}) == {"raw": ["AA=="]}


class TestOutputToJson:
    def test_every_output_variant_is_supported(self) -> None:
        assert supported_outputs() == set(out.OUTPUT_TYPES)

    def test_unknown_output(self) -> None:
        with pytest.raises(TypeError, match="no JSON conversion"):
            output_to_json(out.Output())

    def test_scalars(self) -> None:
        assert output_to_json(out.Unit()) is None
        assert output_to_json(out.Version(3)) == {"version": 3}
        assert output_to_json(out.MaybeVersion(None)) is None
        assert output_to_json(out.MaybeVersion(4)) == 4
        assert output_to_json(out.Bool(False)) is False
        assert output_to_json(out.Uint(7)) == 7

    def test_versioned(self) -> None:
        vv = VersionedValue(value=b"x", version=2, timestamp=100)
        assert output_to_json(out.MaybeVersioned(vv)) == {
            "value": "eA==",
            "version": 2,
            "timestamp": 100,
        }
        assert output_to_json(out.MaybeVersioned(None)) is None

    def test_history(self) -> None:
        assert output_to_json(out.VersionHistory(None)) is None
        assert output_to_json(out.VersionHistory([])) == []

    def test_json_list_cursor_only_when_present(self) -> None:
        assert output_to_json(out.JsonListResult(["a"])) == {"keys": ["a"]}
        assert output_to_json(out.JsonListResult(["a"], "a")) == {"keys": ["a"], "cursor": "a"}

    def test_vector_outputs(self) -> None:
        matches = out.VectorMatches([VectorMatch(key="k", score=0.5)])
        assert output_to_json(matches) == [{"key": "k", "score": 0.5, "metadata": None}]
        record = VectorRecord(key="k", embedding=[1.0], metadata={"m": 1}, version=1, timestamp=9)
        assert output_to_json(out.VectorData(record))["embedding"] == [1.0]
        assert output_to_json(out.VectorData(None)) is None

    def test_collection_metric_is_lowercase(self) -> None:
        info = CollectionInfo(
            name="c",
            dimension=2,
            metric=DistanceMetric.DOT_PRODUCT,
            count=0,
            index_type="brute_force",
            memory_bytes=0,
        )
        (wire,) = output_to_json(out.VectorCollectionList([info]))
        assert wire["metric"] == "dotproduct"
        assert wire["index_type"] == "brute_force"

    def test_branch_outputs(self) -> None:
        info = BranchInfo(
            id="b", status=BranchStatus.ACTIVE, created_at=1, updated_at=2, parent_id="main"
        )
        versioned = VersionedBranchInfo(info=info, version=5, timestamp=3)
        assert output_to_json(out.MaybeBranchInfo(versioned)) == {
            "id": "b",
            "status": "active",
            "created_at": 1,
            "updated_at": 2,
            "parent_id": "main",
            "version": 5,
            "timestamp": 3,
        }
        assert output_to_json(out.BranchWithVersion(info, 6))["version"] == 6
        assert output_to_json(out.MaybeBranchInfo(None)) is None

    def test_transaction_outputs(self) -> None:
        assert output_to_json(out.TxnBegun()) == {"status": "begun"}
        assert output_to_json(out.TxnCommitted(8)) == {"status": "committed", "version": 8}
        assert output_to_json(out.TxnAborted()) == {"status": "aborted"}
        record = TxnInfoRecord(id=1, status=TxnStatus.ACTIVE, started_at=10)
        assert output_to_json(out.TxnInfo(record)) == {
            "id": 1,
            "status": "active",
            "started_at": 10,
        }
        assert output_to_json(out.TxnInfo(None)) is None

    def test_search_results(self) -> None:
        hit = SearchHit(entity="k", primitive="kv", score=1.0, rank=1, snippet="text")
        assert output_to_json(out.SearchResults([hit])) == [
            {"entity": "k", "primitive": "kv", "score": 1.0, "rank": 1, "snippet": "text"}
        ]

    def test_pong_and_time_range(self) -> None:
        assert output_to_json(out.Pong("1.0")) == {"pong": True, "version": "1.0"}
        assert output_to_json(out.TimeRange(None, None)) == {"oldest_ts": None, "latest_ts": None}
