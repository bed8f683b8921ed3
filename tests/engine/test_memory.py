"""Tests for the in-memory engine: sessions, persistence, branch ops."""

from __future__ import annotations

from pathlib import Path

import pytest

from strata_mcp.engine import AccessMode, ErrorCode, Strata, StrataError, StrataSession
from strata_mcp.engine import commands as cmd
from strata_mcp.engine import outputs as out
from strata_mcp.engine.memory import SNAPSHOT_FILE
from strata_mcp.engine.types import MergeStrategy, PrimitiveType, TxnOptions


@pytest.fixture
def engine(db: Strata) -> StrataSession:
    return db.session()


class TestVersions:
    def test_versions_increase(self, engine: StrataSession) -> None:
        first = engine.execute(cmd.KvPut(key="a", value=1))
        second = engine.execute(cmd.StateSet(cell="b", value=2))
        assert isinstance(first, out.Version)
        assert isinstance(second, out.Version)
        assert second.version > first.version

    def test_event_sequences_start_at_zero(self, engine: StrataSession) -> None:
        assert engine.execute(cmd.EventAppend(event_type="t", payload=1)) == out.Version(0)
        assert engine.execute(cmd.EventAppend(event_type="t", payload=2)) == out.Version(1)

    def test_unknown_command(self, engine: StrataSession) -> None:
        with pytest.raises(StrataError) as exc_info:
            engine.execute(cmd.Command())
        assert exc_info.value.code is ErrorCode.NOT_IMPLEMENTED

    def test_empty_key_rejected(self, engine: StrataSession) -> None:
        with pytest.raises(StrataError) as exc_info:
            engine.execute(cmd.KvPut(key="", value=1))
        assert exc_info.value.code is ErrorCode.INVALID_KEY


class TestStateCells:
    def test_cas_on_missing_cell(self, engine: StrataSession) -> None:
        created = engine.execute(cmd.StateCas(cell="c", value=1))
        assert isinstance(created, out.MaybeVersion)
        assert created.version is not None
        assert engine.execute(cmd.StateCas(cell="c", value=2)) == out.MaybeVersion(None)

    def test_cas_with_counter(self, engine: StrataSession) -> None:
        version = engine.execute(cmd.StateSet(cell="c", value=1)).version
        assert engine.execute(
            cmd.StateCas(cell="c", value=2, expected_counter=version + 100)
        ) == out.MaybeVersion(None)
        swapped = engine.execute(cmd.StateCas(cell="c", value=2, expected_counter=version))
        assert swapped.version is not None

    def test_init_keeps_existing(self, engine: StrataSession) -> None:
        version = engine.execute(cmd.StateSet(cell="c", value=1)).version
        assert engine.execute(cmd.StateInit(cell="c", value=9)) == out.Version(version)
        got = engine.execute(cmd.StateGet(cell="c"))
        assert got.value.value == 1


class TestPersistence:
    def test_close_writes_snapshot(self, tmp_path: Path) -> None:
        db = Strata.open(tmp_path)
        db.session().execute(cmd.KvPut(key="k", value=b"\x00\x01"))
        db.close()
        assert (tmp_path / SNAPSHOT_FILE).is_file()

        reopened = Strata.open(tmp_path)
        got = reopened.session().execute(cmd.KvGet(key="k"))
        assert got.value.value == b"\x00\x01"

    def test_versions_continue_after_reopen(self, tmp_path: Path) -> None:
        db = Strata.open(tmp_path)
        before = db.session().execute(cmd.KvPut(key="k", value=1)).version
        db.close()
        after = Strata.open(tmp_path).session().execute(cmd.KvPut(key="k", value=2)).version
        assert after > before

    def test_branches_survive_reopen(self, tmp_path: Path) -> None:
        db = Strata.open(tmp_path)
        db.session().execute(cmd.BranchCreate(branch_id="feature"))
        db.close()
        listed = Strata.open(tmp_path).session().execute(cmd.BranchList())
        assert [b.info.id for b in listed.branches] == ["default", "feature"]

    def test_read_only_never_writes(self, tmp_path: Path) -> None:
        Strata.open(tmp_path).close()
        snapshot = tmp_path / SNAPSHOT_FILE
        mtime = snapshot.stat().st_mtime_ns
        ro = Strata.open(tmp_path, access_mode=AccessMode.READ_ONLY)
        ro.flush()
        ro.close()
        assert snapshot.stat().st_mtime_ns == mtime

    def test_corrupt_snapshot(self, tmp_path: Path) -> None:
        (tmp_path / SNAPSHOT_FILE).write_bytes(b"garbage")
        with pytest.raises(StrataError) as exc_info:
            Strata.open(tmp_path)
        assert exc_info.value.code is ErrorCode.SERIALIZATION_ERROR

    def test_cache_flush_is_noop(self) -> None:
        db = Strata.cache()
        db.flush()
        assert db.path is None


class TestRetentionAndCompaction:
    def test_retention_trims_history(self) -> None:
        engine = Strata.cache(retention_max_versions=1).session()
        for i in range(3):
            engine.execute(cmd.KvPut(key="k", value=i))
        engine.execute(cmd.RetentionApply())
        history = engine.execute(cmd.KvGetv(key="k"))
        assert [v.value for v in history.values] == [2]

    def test_compact_removes_tombstones_only(self, engine: StrataSession) -> None:
        engine.execute(cmd.KvPut(key="dead", value=1))
        engine.execute(cmd.KvDelete(key="dead"))
        engine.execute(cmd.KvPut(key="alive", value=1))
        engine.execute(cmd.Compact())
        assert engine.execute(cmd.KvGetv(key="dead")) == out.VersionHistory(None)
        assert engine.execute(cmd.KvGet(key="alive")).value is not None


class TestTransactions:
    def test_rollback_restores_every_branch(self, db: Strata, engine: StrataSession) -> None:
        engine.execute(cmd.TxnBegin(options=TxnOptions()))
        engine.execute(cmd.BranchCreate(branch_id="temp"))
        engine.execute(cmd.KvPut(key="k", value=1))
        engine.execute(cmd.TxnRollback())
        assert "temp" not in db.branch_states
        assert engine.execute(cmd.KvGet(key="k")) == out.MaybeVersioned(None)

    def test_sessions_have_independent_transactions(self, db: Strata) -> None:
        first, second = db.session(), db.session()
        first.execute(cmd.TxnBegin(options=TxnOptions()))
        assert first.in_transaction is True
        assert second.in_transaction is False


class TestBranchOps:
    def test_fork_sets_parent_and_copies(self, db: Strata, engine: StrataSession) -> None:
        engine.execute(cmd.KvPut(key="k", value=[1]))
        info = db.branches().fork("default", "copy")
        assert info.keys_copied == 1
        branch = engine.execute(cmd.BranchGet(branch="copy")).info
        assert branch.info.parent_id == "default"

        engine.execute(cmd.KvPut(branch="copy", key="k", value=[2]))
        assert engine.execute(cmd.KvGet(key="k")).value.value == [1]

    def test_diff_labels(self, db: Strata, engine: StrataSession) -> None:
        engine.execute(cmd.BranchCreate(branch_id="b"))
        engine.execute(cmd.KvPut(branch="b", key="only_b", value=1))
        engine.execute(cmd.StateSet(cell="cell", value=1))
        result = db.branches().diff("default", "b")
        (space,) = result.spaces
        assert [(e.primitive, e.key) for e in space.added] == [(PrimitiveType.KV, "only_b")]
        assert [(e.primitive, e.key) for e in space.removed] == [(PrimitiveType.STATE, "cell")]
        assert PrimitiveType.KV.label == "Kv"
        assert result.summary.total_added == 1
        assert result.summary.total_removed == 1

    def test_strict_merge_writes_nothing_on_conflict(
        self, db: Strata, engine: StrataSession
    ) -> None:
        engine.execute(cmd.KvPut(key="shared", value="target"))
        db.branches().fork("default", "src")
        engine.execute(cmd.KvPut(branch="src", key="shared", value="source"))
        engine.execute(cmd.KvPut(branch="src", key="fresh", value=1))
        with pytest.raises(StrataError) as exc_info:
            db.branches().merge("src", "default", MergeStrategy.STRICT)
        assert exc_info.value.code is ErrorCode.CONFLICT
        assert engine.execute(cmd.KvGet(key="fresh")) == out.MaybeVersioned(None)

    def test_last_writer_wins_merge(self, db: Strata, engine: StrataSession) -> None:
        engine.execute(cmd.KvPut(key="shared", value="target"))
        db.branches().fork("default", "src")
        engine.execute(cmd.KvPut(branch="src", key="shared", value="source"))
        info = db.branches().merge("src", "default")
        assert len(info.conflicts) == 1
        assert engine.execute(cmd.KvGet(key="shared")).value.value == "source"

    def test_fork_on_read_only(self, read_only_db: Strata) -> None:
        with pytest.raises(StrataError) as exc_info:
            read_only_db.branches().fork("default", "x")
        assert exc_info.value.code is ErrorCode.ACCESS_DENIED
