"""In-memory Strata engine.

``Strata`` owns the branches; ``StrataSession`` executes commands against
it; ``BranchOps`` is the fork / diff / merge API. A database opened with a
path keeps its data in memory and persists a snapshot file on flush,
compact and close.
"""

from __future__ import annotations

import copy
import itertools
import logging
import math
import operator
import re
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from strata_mcp.engine import commands as cmd
from strata_mcp.engine import jsonpath
from strata_mcp.engine import outputs as out
from strata_mcp.engine.bundle import (
    FORMAT_VERSION,
    bundle_from_document,
    make_document,
    read_bundle,
    read_document,
    write_bundle,
    write_document,
)
from strata_mcp.engine.errors import (
    ErrorCode,
    StrataError,
    branch_not_found,
    collection_not_found,
    invalid_input,
)
from strata_mcp.engine.store import BranchState, Collection, Entry, Event, VersionedStore
from strata_mcp.engine.types import (
    DEFAULT_BRANCH,
    DEFAULT_SPACE,
    AccessMode,
    BranchDiffEntry,
    BranchDiffResult,
    BranchInfo,
    BranchStatus,
    CollectionInfo,
    DatabaseStats,
    DiffSummary,
    DistanceMetric,
    ExportInfo,
    FilterOp,
    ForkInfo,
    ImportInfo,
    MergeConflict,
    MergeInfo,
    MergeStrategy,
    MetadataFilter,
    PrimitiveType,
    SearchHit,
    SpaceDiff,
    TxnInfoRecord,
    TxnStatus,
    ValidateInfo,
    VectorMatch,
    VectorRecord,
    VersionedBranchInfo,
    VersionedValue,
)

logger = logging.getLogger(__name__)

ENGINE_VERSION = "0.1.0"
SNAPSHOT_FILE = "strata.snapshot"
DEFAULT_SEARCH_K = 10
SNIPPET_CHARS = 120

# Primitives whose live values take part in diff and merge.
_KEYED_PRIMITIVES = (PrimitiveType.KV, PrimitiveType.JSON, PrimitiveType.STATE)
_SEARCHABLE = (PrimitiveType.KV, PrimitiveType.JSON, PrimitiveType.STATE, PrimitiveType.EVENT)


class Strata:
    """An in-memory database made of named branches."""

    def __init__(
        self,
        *,
        path: Path | None = None,
        access_mode: AccessMode = AccessMode.READ_WRITE,
        retention_max_versions: int | None = None,
    ) -> None:
        self.path = path
        self.access_mode = access_mode
        self.retention_max_versions = retention_max_versions
        self.model: dict[str, Any] | None = None
        self.branch_states: dict[str, BranchState] = {}
        self._version = 0
        self._last_ts = 0
        self._started = time.monotonic()
        self._txn_ids = itertools.count(1)
        self._closed = False
        self.branch_states[DEFAULT_BRANCH] = self.new_branch(DEFAULT_BRANCH)

    @classmethod
    def cache(cls, *, retention_max_versions: int | None = None) -> Strata:
        """Open a purely in-memory database."""
        return cls(retention_max_versions=retention_max_versions)

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        access_mode: AccessMode = AccessMode.READ_WRITE,
        retention_max_versions: int | None = None,
    ) -> Strata:
        """Open (or create) the database stored under the directory *path*."""
        root = Path(path)
        if access_mode is AccessMode.READ_ONLY:
            if not root.is_dir():
                raise StrataError(ErrorCode.IO_ERROR, f"database not found: {root}")
        else:
            try:
                root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise StrataError(ErrorCode.IO_ERROR, f"cannot create {root}: {exc}") from exc
        db = cls(
            path=root,
            access_mode=access_mode,
            retention_max_versions=retention_max_versions,
        )
        snapshot = root / SNAPSHOT_FILE
        if snapshot.exists():
            db._load_snapshot(snapshot)
        logger.info("Opened database at %s (%s)", root, access_mode.value)
        return db

    @property
    def read_only(self) -> bool:
        return self.access_mode is AccessMode.READ_ONLY

    def session(self) -> StrataSession:
        return StrataSession(self)

    def branches(self) -> BranchOps:
        return BranchOps(self)

    def flush(self) -> None:
        """Persist the snapshot file, if this database has a path."""
        if self.path is None or self.read_only:
            return
        document = {
            "format_version": FORMAT_VERSION,
            "version": self._version,
            "branches": [
                make_document(state.header(), state.to_entries())
                for state in self.branch_states.values()
            ],
        }
        write_document(self.path / SNAPSHOT_FILE, document)

    def close(self) -> None:
        if self._closed:
            return
        self.flush()
        self._closed = True
        logger.debug("Closed database")

    # --- Internal API used by sessions and branch ops ---

    def require_writable(self) -> None:
        if self.read_only:
            raise StrataError(ErrorCode.ACCESS_DENIED, "database is read-only")

    def next_version(self) -> int:
        self._version += 1
        return self._version

    @property
    def current_version(self) -> int:
        return self._version

    def now(self) -> int:
        """Strictly increasing wall-clock timestamp in microseconds."""
        self._last_ts = max(time.time_ns() // 1000, self._last_ts + 1)
        return self._last_ts

    def uptime_secs(self) -> int:
        return int(time.monotonic() - self._started)

    def next_txn_id(self) -> int:
        return next(self._txn_ids)

    def new_branch(
        self, branch_id: str, *, parent_id: str | None = None, metadata: Any = None
    ) -> BranchState:
        ts = self.now()
        info = BranchInfo(
            id=branch_id,
            status=BranchStatus.ACTIVE,
            created_at=ts,
            updated_at=ts,
            parent_id=parent_id,
            metadata=metadata,
        )
        return BranchState(info=info, version=self.next_version(), timestamp=ts)

    def branch(self, name: str) -> BranchState:
        state = self.branch_states.get(name)
        if state is None:
            raise branch_not_found(name)
        return state

    def adopt(self, state: BranchState) -> None:
        """Register an externally built branch (import, snapshot load)."""
        self.branch_states[state.info.id] = state
        self._version = max(self._version, state.max_version())

    def _load_snapshot(self, path: Path) -> None:
        document = read_document(path)
        raw_branches = document.get("branches")
        if not isinstance(raw_branches, list):
            raise StrataError(ErrorCode.SERIALIZATION_ERROR, f"{path}: malformed snapshot")
        self.branch_states.clear()
        for raw in raw_branches:
            bundle = bundle_from_document(raw, source=str(path))
            if not bundle.checksum_valid:
                raise StrataError(
                    ErrorCode.SERIALIZATION_ERROR,
                    f"{path}: checksum mismatch for branch {bundle.branch_id}",
                )
            self.adopt(BranchState.from_bundle(bundle.header, bundle.entries))
        if DEFAULT_BRANCH not in self.branch_states:
            self.branch_states[DEFAULT_BRANCH] = self.new_branch(DEFAULT_BRANCH)
        self._version = max(self._version, int(document.get("version", 0)))
        logger.debug("Loaded %d branches from %s", len(self.branch_states), path)


# --- Sessions ---

type _Handler = Callable[[StrataSession, Any], out.Output]
_HANDLERS: dict[type[cmd.Command], _Handler] = {}


def _handles(command_type: type[cmd.Command]) -> Callable[[_Handler], _Handler]:
    def register(fn: _Handler) -> _Handler:
        _HANDLERS[command_type] = fn
        return fn

    return register


@dataclass
class _Transaction:
    id: int
    started_at: int
    read_only: bool
    snapshot: dict[str, BranchState]


def _space(space: str | None) -> str:
    return space or DEFAULT_SPACE


def _check_key(key: str, what: str = "key") -> None:
    if not key:
        raise StrataError(ErrorCode.INVALID_KEY, f"{what} must not be empty")


def _versioned(entry: Entry | None) -> VersionedValue | None:
    if entry is None:
        return None
    return VersionedValue(value=entry.value, version=entry.version, timestamp=entry.timestamp)


def _history(entries: list[Entry] | None) -> out.VersionHistory:
    if entries is None:
        return out.VersionHistory(None)
    return out.VersionHistory([VersionedValue(e.value, e.version, e.timestamp) for e in entries])


def _page(
    keys: list[str], prefix: str | None, cursor: str | None, limit: int | None
) -> tuple[list[str], bool]:
    """Filter *keys* (sorted) by prefix and cursor; return (page, has_more)."""
    if prefix:
        keys = [k for k in keys if k.startswith(prefix)]
    if cursor is not None:
        keys = [k for k in keys if k > cursor]
    if limit is None or len(keys) <= limit:
        return keys, False
    return keys[:limit], True


class StrataSession:
    """Executes commands against a database; holds at most one transaction."""

    def __init__(self, db: Strata) -> None:
        self._db = db
        self._txn: _Transaction | None = None

    @property
    def in_transaction(self) -> bool:
        return self._txn is not None

    def execute(self, command: cmd.Command) -> out.Output:
        handler = _HANDLERS.get(type(command))
        if handler is None:
            raise StrataError(
                ErrorCode.NOT_IMPLEMENTED, f"unsupported command: {type(command).__name__}"
            )
        if command.WRITES:
            self._db.require_writable()
            if self._txn is not None and self._txn.read_only:
                raise StrataError(ErrorCode.ACCESS_DENIED, "transaction is read-only")
        return handler(self, command)

    # --- helpers ---

    def _branch(self, name: str | None) -> BranchState:
        return self._db.branch(name or DEFAULT_BRANCH)

    def _entry(self, state: BranchState, space: str, value: Any, *, deleted: bool = False) -> Entry:
        state.spaces.add(space)
        return Entry(
            value=value,
            version=self._db.next_version(),
            timestamp=self._db.now(),
            deleted=deleted,
        )

    def _put(
        self, store: VersionedStore, state: BranchState, space: str, key: str, value: Any
    ) -> int:
        entry = self._entry(state, space, value)
        store.write(space, key, entry)
        return entry.version

    def _remove(self, store: VersionedStore, state: BranchState, space: str, key: str) -> bool:
        if store.latest(space, key) is None:
            return False
        store.write(space, key, self._entry(state, space, None, deleted=True))
        return True

    # --- Database ---

    @_handles(cmd.Ping)
    def _ping(self, c: cmd.Ping) -> out.Output:
        return out.Pong(ENGINE_VERSION)

    @_handles(cmd.Info)
    def _info(self, c: cmd.Info) -> out.Output:
        states = self._db.branch_states.values()
        return out.DatabaseInfo(
            DatabaseStats(
                version=ENGINE_VERSION,
                uptime_secs=self._db.uptime_secs(),
                branch_count=len(states),
                total_keys=sum(s.live_key_count() for s in states),
            )
        )

    @_handles(cmd.Flush)
    def _flush(self, c: cmd.Flush) -> out.Output:
        self._db.flush()
        return out.Unit()

    @_handles(cmd.Compact)
    def _compact(self, c: cmd.Compact) -> out.Output:
        removed = 0
        for state in self._db.branch_states.values():
            for store in (state.kv, state.state, state.json):
                removed += store.compact()
            for collections in state.collections.values():
                for coll in collections.values():
                    dead = [k for k, chain in coll.records.items() if chain[-1].deleted]
                    for key in dead:
                        del coll.records[key]
                    removed += len(dead)
        logger.debug("Compaction removed %d deleted keys", removed)
        self._db.flush()
        return out.Unit()

    @_handles(cmd.TimeRange)
    def _time_range(self, c: cmd.TimeRange) -> out.Output:
        stamps = list(self._branch(c.branch).timestamps())
        if not stamps:
            return out.TimeRange(None, None)
        return out.TimeRange(min(stamps), max(stamps))

    # --- Key-value ---

    @_handles(cmd.KvPut)
    def _kv_put(self, c: cmd.KvPut) -> out.Output:
        _check_key(c.key)
        state = self._branch(c.branch)
        return out.Version(self._put(state.kv, state, _space(c.space), c.key, c.value))

    @_handles(cmd.KvGet)
    def _kv_get(self, c: cmd.KvGet) -> out.Output:
        _check_key(c.key)
        state = self._branch(c.branch)
        return out.MaybeVersioned(_versioned(state.kv.latest(_space(c.space), c.key)))

    @_handles(cmd.KvDelete)
    def _kv_delete(self, c: cmd.KvDelete) -> out.Output:
        _check_key(c.key)
        state = self._branch(c.branch)
        return out.Bool(self._remove(state.kv, state, _space(c.space), c.key))

    @_handles(cmd.KvList)
    def _kv_list(self, c: cmd.KvList) -> out.Output:
        state = self._branch(c.branch)
        keys, _more = _page(list(state.kv.live(_space(c.space))), c.prefix, c.cursor, c.limit)
        return out.Keys(keys)

    @_handles(cmd.KvGetv)
    def _kv_getv(self, c: cmd.KvGetv) -> out.Output:
        _check_key(c.key)
        return _history(self._branch(c.branch).kv.history(_space(c.space), c.key))

    # --- State cells ---

    @_handles(cmd.StateSet)
    def _state_set(self, c: cmd.StateSet) -> out.Output:
        _check_key(c.cell, "cell")
        state = self._branch(c.branch)
        return out.Version(self._put(state.state, state, _space(c.space), c.cell, c.value))

    @_handles(cmd.StateGet)
    def _state_get(self, c: cmd.StateGet) -> out.Output:
        _check_key(c.cell, "cell")
        state = self._branch(c.branch)
        return out.MaybeVersioned(_versioned(state.state.latest(_space(c.space), c.cell, c.as_of)))

    @_handles(cmd.StateDelete)
    def _state_delete(self, c: cmd.StateDelete) -> out.Output:
        _check_key(c.cell, "cell")
        state = self._branch(c.branch)
        return out.Bool(self._remove(state.state, state, _space(c.space), c.cell))

    @_handles(cmd.StateInit)
    def _state_init(self, c: cmd.StateInit) -> out.Output:
        _check_key(c.cell, "cell")
        state = self._branch(c.branch)
        space = _space(c.space)
        existing = state.state.latest(space, c.cell)
        if existing is not None:
            return out.Version(existing.version)
        return out.Version(self._put(state.state, state, space, c.cell, c.value))

    @_handles(cmd.StateCas)
    def _state_cas(self, c: cmd.StateCas) -> out.Output:
        _check_key(c.cell, "cell")
        state = self._branch(c.branch)
        space = _space(c.space)
        current = state.state.latest(space, c.cell)
        if c.expected_counter is None:
            matched = current is None
        else:
            matched = current is not None and current.version == c.expected_counter
        if not matched:
            return out.MaybeVersion(None)
        return out.MaybeVersion(self._put(state.state, state, space, c.cell, c.value))

    @_handles(cmd.StateList)
    def _state_list(self, c: cmd.StateList) -> out.Output:
        state = self._branch(c.branch)
        keys, _more = _page(list(state.state.live(_space(c.space), c.as_of)), c.prefix, None, None)
        return out.Keys(keys)

    @_handles(cmd.StateGetv)
    def _state_getv(self, c: cmd.StateGetv) -> out.Output:
        _check_key(c.cell, "cell")
        return _history(self._branch(c.branch).state.history(_space(c.space), c.cell, c.as_of))

    # --- Event log ---

    @_handles(cmd.EventAppend)
    def _event_append(self, c: cmd.EventAppend) -> out.Output:
        if not c.event_type:
            raise invalid_input("event_type must not be empty")
        state = self._branch(c.branch)
        space = _space(c.space)
        state.spaces.add(space)
        log = state.events.setdefault(space, [])
        event = Event(
            sequence=len(log),
            event_type=c.event_type,
            payload=c.payload,
            version=self._db.next_version(),
            timestamp=self._db.now(),
        )
        log.append(event)
        return out.Version(event.sequence)

    @_handles(cmd.EventGet)
    def _event_get(self, c: cmd.EventGet) -> out.Output:
        log = self._branch(c.branch).events.get(_space(c.space), [])
        if c.sequence >= len(log):
            return out.MaybeVersioned(None)
        event = log[c.sequence]
        return out.MaybeVersioned(VersionedValue(event.payload, event.sequence, event.timestamp))

    @_handles(cmd.EventGetByType)
    def _event_get_by_type(self, c: cmd.EventGetByType) -> out.Output:
        log = self._branch(c.branch).events.get(_space(c.space), [])
        matches = [
            VersionedValue(e.payload, e.sequence, e.timestamp)
            for e in log
            if e.event_type == c.event_type
            and (c.after_sequence is None or e.sequence > c.after_sequence)
        ]
        if c.limit is not None:
            matches = matches[: c.limit]
        return out.VersionedValues(matches)

    @_handles(cmd.EventLen)
    def _event_len(self, c: cmd.EventLen) -> out.Output:
        return out.Uint(len(self._branch(c.branch).events.get(_space(c.space), [])))

    # --- JSON documents ---

    @_handles(cmd.JsonSet)
    def _json_set(self, c: cmd.JsonSet) -> out.Output:
        _check_key(c.key)
        segments = jsonpath.parse(c.path)
        state = self._branch(c.branch)
        space = _space(c.space)
        current = state.json.latest(space, c.key)
        doc = jsonpath.set_at(current.value if current else None, segments, c.value)
        return out.Version(self._put(state.json, state, space, c.key, doc))

    @_handles(cmd.JsonGet)
    def _json_get(self, c: cmd.JsonGet) -> out.Output:
        _check_key(c.key)
        segments = jsonpath.parse(c.path)
        entry = self._branch(c.branch).json.latest(_space(c.space), c.key)
        if entry is None:
            return out.MaybeVersioned(None)
        found, value = jsonpath.get(entry.value, segments)
        if not found:
            return out.MaybeVersioned(None)
        return out.MaybeVersioned(VersionedValue(value, entry.version, entry.timestamp))

    @_handles(cmd.JsonDelete)
    def _json_delete(self, c: cmd.JsonDelete) -> out.Output:
        _check_key(c.key)
        segments = jsonpath.parse(c.path)
        state = self._branch(c.branch)
        space = _space(c.space)
        if not segments:
            return out.Uint(int(self._remove(state.json, state, space, c.key)))
        entry = state.json.latest(space, c.key)
        if entry is None:
            return out.Uint(0)
        doc, removed = jsonpath.delete_at(entry.value, segments)
        if not removed:
            return out.Uint(0)
        self._put(state.json, state, space, c.key, doc)
        return out.Uint(1)

    @_handles(cmd.JsonList)
    def _json_list(self, c: cmd.JsonList) -> out.Output:
        state = self._branch(c.branch)
        keys, more = _page(list(state.json.live(_space(c.space))), c.prefix, c.cursor, c.limit)
        if not more:
            return out.JsonListResult(keys, None)
        # An empty page still hands back a cursor so the caller keeps paging.
        return out.JsonListResult(keys, keys[-1] if keys else (c.cursor or ""))

    @_handles(cmd.JsonGetv)
    def _json_getv(self, c: cmd.JsonGetv) -> out.Output:
        _check_key(c.key)
        return _history(self._branch(c.branch).json.history(_space(c.space), c.key))

    # --- Spaces ---

    @_handles(cmd.SpaceList)
    def _space_list(self, c: cmd.SpaceList) -> out.Output:
        return out.SpaceList(sorted(self._branch(c.branch).spaces))

    @_handles(cmd.SpaceCreate)
    def _space_create(self, c: cmd.SpaceCreate) -> out.Output:
        if not c.space:
            raise invalid_input("space name must not be empty")
        self._branch(c.branch).spaces.add(c.space)
        return out.Unit()

    @_handles(cmd.SpaceDelete)
    def _space_delete(self, c: cmd.SpaceDelete) -> out.Output:
        state = self._branch(c.branch)
        if c.space == DEFAULT_SPACE:
            raise StrataError(ErrorCode.CONSTRAINT_VIOLATION, "cannot delete the default space")
        if c.space not in state.spaces:
            raise invalid_input(f"space not found: {c.space}")
        if state.space_has_data(c.space) and not c.force:
            raise StrataError(
                ErrorCode.CONSTRAINT_VIOLATION,
                f"space '{c.space}' is not empty; use force to delete it",
            )
        state.drop_space(c.space)
        return out.Unit()

    @_handles(cmd.SpaceExists)
    def _space_exists(self, c: cmd.SpaceExists) -> out.Output:
        return out.Bool(c.space in self._branch(c.branch).spaces)

    # --- Branches ---

    def _versioned_branch(self, state: BranchState) -> VersionedBranchInfo:
        return VersionedBranchInfo(state.info, state.version, state.timestamp)

    @_handles(cmd.BranchCreate)
    def _branch_create(self, c: cmd.BranchCreate) -> out.Output:
        branch_id = c.branch_id if c.branch_id is not None else str(uuid.uuid4())
        if not branch_id:
            raise invalid_input("branch name must not be empty")
        if branch_id in self._db.branch_states:
            raise StrataError(ErrorCode.BRANCH_EXISTS, f"branch already exists: {branch_id}")
        state = self._db.new_branch(branch_id, metadata=c.metadata)
        self._db.branch_states[branch_id] = state
        return out.BranchWithVersion(info=state.info, version=state.version)

    @_handles(cmd.BranchGet)
    def _branch_get(self, c: cmd.BranchGet) -> out.Output:
        state = self._db.branch_states.get(c.branch)
        return out.MaybeBranchInfo(self._versioned_branch(state) if state else None)

    @_handles(cmd.BranchList)
    def _branch_list(self, c: cmd.BranchList) -> out.Output:
        states = [
            s
            for s in self._db.branch_states.values()
            if c.state is None or s.info.status.value == c.state
        ]
        start = c.offset or 0
        end = None if c.limit is None else start + c.limit
        return out.BranchInfoList([self._versioned_branch(s) for s in states[start:end]])

    @_handles(cmd.BranchExists)
    def _branch_exists(self, c: cmd.BranchExists) -> out.Output:
        return out.Bool(c.branch in self._db.branch_states)

    @_handles(cmd.BranchDelete)
    def _branch_delete(self, c: cmd.BranchDelete) -> out.Output:
        if c.branch == DEFAULT_BRANCH:
            raise StrataError(ErrorCode.CONSTRAINT_VIOLATION, "cannot delete the default branch")
        self._db.branch(c.branch)
        del self._db.branch_states[c.branch]
        return out.Unit()

    # --- Vectors ---

    def _collection(self, c: Any) -> Collection:
        state = self._branch(c.branch)
        coll = state.collections.get(_space(c.space), {}).get(c.collection)
        if coll is None:
            raise collection_not_found(c.collection)
        return coll

    @_handles(cmd.VectorCreateCollection)
    def _vector_create_collection(self, c: cmd.VectorCreateCollection) -> out.Output:
        if not c.collection:
            raise invalid_input("collection name must not be empty")
        if c.dimension <= 0:
            raise invalid_input("dimension must be positive")
        state = self._branch(c.branch)
        space = _space(c.space)
        collections = state.collections.setdefault(space, {})
        if c.collection in collections:
            raise StrataError(
                ErrorCode.COLLECTION_EXISTS, f"collection already exists: {c.collection}"
            )
        state.spaces.add(space)
        coll = Collection(
            name=c.collection,
            dimension=c.dimension,
            metric=c.metric,
            version=self._db.next_version(),
            timestamp=self._db.now(),
        )
        collections[c.collection] = coll
        return out.Version(coll.version)

    @_handles(cmd.VectorDeleteCollection)
    def _vector_delete_collection(self, c: cmd.VectorDeleteCollection) -> out.Output:
        state = self._branch(c.branch)
        collections = state.collections.get(_space(c.space), {})
        return out.Bool(collections.pop(c.collection, None) is not None)

    @_handles(cmd.VectorListCollections)
    def _vector_list_collections(self, c: cmd.VectorListCollections) -> out.Output:
        collections = self._branch(c.branch).collections.get(_space(c.space), {})
        return out.VectorCollectionList(
            [_collection_info(collections[name]) for name in sorted(collections)]
        )

    @_handles(cmd.VectorCollectionStats)
    def _vector_collection_stats(self, c: cmd.VectorCollectionStats) -> out.Output:
        return out.VectorCollectionList([_collection_info(self._collection(c))])

    def _write_vector(self, coll: Collection, key: str, vector: list[float], metadata: Any) -> int:
        entry = Entry(
            value={"embedding": list(vector), "metadata": metadata},
            version=self._db.next_version(),
            timestamp=self._db.now(),
        )
        coll.records.setdefault(key, []).append(entry)
        return entry.version

    @_handles(cmd.VectorUpsert)
    def _vector_upsert(self, c: cmd.VectorUpsert) -> out.Output:
        _check_key(c.key)
        coll = self._collection(c)
        _check_vector(c.vector, coll.dimension)
        return out.Version(self._write_vector(coll, c.key, c.vector, c.metadata))

    @_handles(cmd.VectorBatchUpsert)
    def _vector_batch_upsert(self, c: cmd.VectorBatchUpsert) -> out.Output:
        coll = self._collection(c)
        for item in c.entries:
            _check_key(item.key)
            _check_vector(item.vector, coll.dimension)
        return out.Versions(
            [self._write_vector(coll, item.key, item.vector, item.metadata) for item in c.entries]
        )

    @_handles(cmd.VectorGet)
    def _vector_get(self, c: cmd.VectorGet) -> out.Output:
        coll = self._collection(c)
        entry = coll.live(c.as_of).get(c.key)
        if entry is None:
            return out.VectorData(None)
        return out.VectorData(
            VectorRecord(
                key=c.key,
                embedding=list(entry.value["embedding"]),
                metadata=entry.value["metadata"],
                version=entry.version,
                timestamp=entry.timestamp,
            )
        )

    @_handles(cmd.VectorDelete)
    def _vector_delete(self, c: cmd.VectorDelete) -> out.Output:
        coll = self._collection(c)
        if c.key not in coll.live():
            return out.Bool(False)
        coll.records[c.key].append(
            Entry(
                value={"embedding": [], "metadata": None},
                version=self._db.next_version(),
                timestamp=self._db.now(),
                deleted=True,
            )
        )
        return out.Bool(True)

    @_handles(cmd.VectorSearch)
    def _vector_search(self, c: cmd.VectorSearch) -> out.Output:
        coll = self._collection(c)
        _check_vector(c.query, coll.dimension)
        metric = c.metric or coll.metric
        matches = [
            VectorMatch(
                key=key,
                score=_similarity(metric, c.query, entry.value["embedding"]),
                metadata=entry.value["metadata"],
            )
            for key, entry in coll.live(c.as_of).items()
            if not c.filter or all(_filter_matches(entry.value["metadata"], f) for f in c.filter)
        ]
        matches.sort(key=lambda m: (-m.score, m.key))
        return out.VectorMatches(matches[: c.k])

    # --- Transactions ---

    @_handles(cmd.TxnBegin)
    def _txn_begin(self, c: cmd.TxnBegin) -> out.Output:
        if self._txn is not None:
            raise StrataError(ErrorCode.TXN_ALREADY_ACTIVE, "a transaction is already active")
        self._branch(c.branch)
        self._txn = _Transaction(
            id=self._db.next_txn_id(),
            started_at=self._db.now(),
            read_only=bool(c.options and c.options.read_only),
            snapshot=copy.deepcopy(self._db.branch_states),
        )
        return out.TxnBegun()

    @_handles(cmd.TxnCommit)
    def _txn_commit(self, c: cmd.TxnCommit) -> out.Output:
        if self._txn is None:
            raise StrataError(ErrorCode.TXN_NOT_ACTIVE, "no active transaction")
        self._txn = None
        return out.TxnCommitted(self._db.current_version)

    @_handles(cmd.TxnRollback)
    def _txn_rollback(self, c: cmd.TxnRollback) -> out.Output:
        if self._txn is None:
            raise StrataError(ErrorCode.TXN_NOT_ACTIVE, "no active transaction")
        self._db.branch_states = self._txn.snapshot
        self._txn = None
        return out.TxnAborted()

    @_handles(cmd.TxnInfo)
    def _txn_info(self, c: cmd.TxnInfo) -> out.Output:
        if self._txn is None:
            return out.TxnInfo(None)
        return out.TxnInfo(
            TxnInfoRecord(id=self._txn.id, status=TxnStatus.ACTIVE, started_at=self._txn.started_at)
        )

    @_handles(cmd.TxnIsActive)
    def _txn_is_active(self, c: cmd.TxnIsActive) -> out.Output:
        return out.Bool(self._txn is not None)

    # --- Search ---

    @_handles(cmd.Search)
    def _search(self, c: cmd.Search) -> out.Output:
        """Keyword search over kv, json, state and event data.

        Hybrid mode ranks the same way: this engine holds no embedding model.
        """
        primitives = _resolve_primitives(c.primitives)
        terms = set(_tokens(c.query))
        if not terms:
            return out.SearchResults([])
        state = self._branch(c.branch)
        space = _space(c.space)
        scored: list[tuple[float, int, str, PrimitiveType, str]] = []
        for order, primitive, entity, value, ts in _search_candidates(state, space, primitives):
            if c.time_range is not None and not c.time_range.start <= ts <= c.time_range.end:
                continue
            text = _text(value)
            found = terms & set(_tokens(f"{entity} {text}"))
            if found:
                scored.append((len(found) / len(terms), order, entity, primitive, text))
        scored.sort(key=lambda s: (-s[0], s[1], s[2]))
        k = c.k if c.k is not None else DEFAULT_SEARCH_K
        hits = [
            SearchHit(
                entity=entity,
                primitive=primitive.value,
                score=score,
                rank=rank,
                snippet=text[:SNIPPET_CHARS] or None,
            )
            for rank, (score, _order, entity, primitive, text) in enumerate(scored[:k], start=1)
        ]
        return out.SearchResults(hits)

    # --- Bundles ---

    @_handles(cmd.BranchExport)
    def _branch_export(self, c: cmd.BranchExport) -> out.Output:
        state = self._db.branch(c.branch_id)
        entries = state.to_entries()
        path = Path(c.path)
        size = write_bundle(path, state.header(), entries)
        logger.info("Exported branch %s to %s", c.branch_id, path)
        return out.BranchExported(
            ExportInfo(
                branch_id=c.branch_id, path=str(path), entry_count=len(entries), bundle_size=size
            )
        )

    @_handles(cmd.BranchImport)
    def _branch_import(self, c: cmd.BranchImport) -> out.Output:
        bundle = read_bundle(Path(c.path))
        if not bundle.checksum_valid:
            raise StrataError(ErrorCode.SERIALIZATION_ERROR, f"bundle checksum mismatch: {c.path}")
        if bundle.branch_id in self._db.branch_states:
            raise StrataError(ErrorCode.BRANCH_EXISTS, f"branch already exists: {bundle.branch_id}")
        state = BranchState.from_bundle(bundle.header, bundle.entries)
        self._db.adopt(state)
        data = [e for e in bundle.entries if e.get("primitive") != "collection"]
        logger.info("Imported branch %s from %s", bundle.branch_id, c.path)
        return out.BranchImported(
            ImportInfo(
                branch_id=bundle.branch_id,
                transactions_applied=len({e.get("version") for e in data}),
                keys_written=len(data),
            )
        )

    @_handles(cmd.BranchBundleValidate)
    def _branch_bundle_validate(self, c: cmd.BranchBundleValidate) -> out.Output:
        bundle = read_bundle(Path(c.path))
        return out.BundleValidated(
            ValidateInfo(
                branch_id=bundle.branch_id,
                format_version=bundle.format_version,
                entry_count=bundle.entry_count,
                checksums_valid=bundle.checksum_valid,
            )
        )

    # --- Retention and configuration ---

    @_handles(cmd.RetentionApply)
    def _retention_apply(self, c: cmd.RetentionApply) -> out.Output:
        state = self._branch(c.branch)
        keep = self._db.retention_max_versions
        if keep is None:
            return out.Unit()
        trimmed = sum(store.trim(keep) for store in (state.kv, state.state, state.json))
        logger.debug("Retention trimmed %d versions on %s", trimmed, state.info.id)
        return out.Unit()

    @_handles(cmd.ConfigureModel)
    def _configure_model(self, c: cmd.ConfigureModel) -> out.Output:
        if not c.endpoint or not c.model:
            raise invalid_input("endpoint and model must not be empty")
        self._db.model = {
            "endpoint": c.endpoint,
            "model": c.model,
            "api_key": c.api_key,
            "timeout_ms": c.timeout_ms,
        }
        logger.info("Configured model %s at %s", c.model, c.endpoint)
        return out.Unit()


def _collection_info(coll: Collection) -> CollectionInfo:
    count = len(coll.live())
    return CollectionInfo(
        name=coll.name,
        dimension=coll.dimension,
        metric=coll.metric,
        count=count,
        index_type="brute_force",
        memory_bytes=count * coll.dimension * 4,
    )


def _check_vector(vector: list[float], dimension: int) -> None:
    if len(vector) != dimension:
        raise StrataError(
            ErrorCode.DIMENSION_MISMATCH,
            f"dimension mismatch: expected {dimension}, got {len(vector)}",
        )
    if not all(math.isfinite(x) for x in vector):
        raise invalid_input("vector components must be finite")


def _similarity(metric: DistanceMetric, a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    if metric is DistanceMetric.DOT_PRODUCT:
        if not math.isfinite(dot):
            raise StrataError(ErrorCode.OVERFLOW, "similarity score is not finite")
        return dot
    if metric is DistanceMetric.EUCLIDEAN:
        return 1.0 / (1.0 + math.dist(a, b))
    norms = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    score = dot / norms if norms else 0.0
    if not math.isfinite(score):
        raise StrataError(ErrorCode.OVERFLOW, "similarity score is not finite")
    return score


_ORDERING: dict[FilterOp, Callable[[Any, Any], bool]] = {
    FilterOp.GT: operator.gt,
    FilterOp.GTE: operator.ge,
    FilterOp.LT: operator.lt,
    FilterOp.LTE: operator.le,
}


def _equal(a: Any, b: Any) -> bool:
    # True == 1 in Python; metadata comparisons keep bools distinct.
    if isinstance(a, bool) != isinstance(b, bool):
        return False
    return a == b


def _is_number(v: Any) -> bool:
    return isinstance(v, int | float) and not isinstance(v, bool)


def _filter_matches(metadata: Any, flt: MetadataFilter) -> bool:
    if not isinstance(metadata, dict) or flt.field not in metadata:
        return False
    actual, expected = metadata[flt.field], flt.value
    if flt.op is FilterOp.EQ:
        return _equal(actual, expected)
    if flt.op is FilterOp.NE:
        return not _equal(actual, expected)
    if flt.op is FilterOp.IN:
        return isinstance(expected, list) and any(_equal(actual, v) for v in expected)
    if flt.op is FilterOp.CONTAINS:
        if isinstance(actual, str) and isinstance(expected, str):
            return expected in actual
        return isinstance(actual, list) and any(_equal(v, expected) for v in actual)
    comparable = (_is_number(actual) and _is_number(expected)) or (
        isinstance(actual, str) and isinstance(expected, str)
    )
    return comparable and _ORDERING[flt.op](actual, expected)


_TOKEN = re.compile(r"\w+")


def _tokens(text: str) -> list[str]:
    return _TOKEN.findall(text.lower())


def _text(value: Any) -> str:
    """Flatten a stored value into searchable text."""
    if value is None or isinstance(value, bytes):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return " ".join(filter(None, (_text(v) for v in value)))
    if isinstance(value, dict):
        return " ".join(filter(None, (f"{k} {_text(v)}".strip() for k, v in value.items())))
    return str(value).lower() if isinstance(value, bool) else str(value)


def _resolve_primitives(names: list[str] | None) -> tuple[PrimitiveType, ...]:
    if names is None:
        return _SEARCHABLE
    resolved: list[PrimitiveType] = []
    for name in names:
        try:
            resolved.append(PrimitiveType(name.lower()))
        except ValueError:
            raise invalid_input(f"unknown primitive: {name}") from None
    return tuple(resolved)


def _search_candidates(
    state: BranchState, space: str, primitives: tuple[PrimitiveType, ...]
) -> list[tuple[int, PrimitiveType, str, Any, int]]:
    candidates: list[tuple[int, PrimitiveType, str, Any, int]] = []
    for order, primitive in enumerate(_SEARCHABLE):
        if primitive not in primitives:
            continue
        if primitive is PrimitiveType.EVENT:
            for event in state.events.get(space, []):
                entity = f"{event.event_type}:{event.sequence}"
                candidates.append((order, primitive, entity, event.payload, event.timestamp))
            continue
        for key, entry in state.store(primitive).live(space).items():
            candidates.append((order, primitive, key, entry.value, entry.timestamp))
    return candidates


# --- Branch operations ---


def _live_values(state: BranchState, primitive: PrimitiveType, space: str) -> dict[str, Any]:
    return {key: entry.value for key, entry in state.store(primitive).live(space).items()}


class BranchOps:
    """Fork, diff and merge across branches."""

    def __init__(self, db: Strata) -> None:
        self._db = db

    def fork(self, source: str, destination: str) -> ForkInfo:
        """Copy *source* (all spaces, full history) into a new branch."""
        self._db.require_writable()
        src = self._db.branch(source)
        if not destination:
            raise invalid_input("branch name must not be empty")
        if destination in self._db.branch_states:
            raise StrataError(ErrorCode.BRANCH_EXISTS, f"branch already exists: {destination}")
        fresh = self._db.new_branch(destination, parent_id=source, metadata=src.info.metadata)
        forked = copy.deepcopy(src)
        forked.info, forked.version, forked.timestamp = fresh.info, fresh.version, fresh.timestamp
        self._db.branch_states[destination] = forked
        logger.info("Forked branch %s -> %s", source, destination)
        return ForkInfo(source=source, destination=destination, keys_copied=forked.record_count())

    def diff(self, branch_a: str, branch_b: str) -> BranchDiffResult:
        """Compare live kv, json and state values of two branches per space."""
        a, b = self._db.branch(branch_a), self._db.branch(branch_b)
        spaces: list[SpaceDiff] = []
        for space in sorted(a.spaces | b.spaces):
            added: list[BranchDiffEntry] = []
            removed: list[BranchDiffEntry] = []
            modified: list[BranchDiffEntry] = []
            for primitive in _KEYED_PRIMITIVES:
                left = _live_values(a, primitive, space)
                right = _live_values(b, primitive, space)
                for key in sorted(left.keys() | right.keys()):
                    entry = BranchDiffEntry(
                        key=key,
                        primitive=primitive,
                        space=space,
                        value_a=left.get(key),
                        value_b=right.get(key),
                    )
                    if key not in left:
                        added.append(entry)
                    elif key not in right:
                        removed.append(entry)
                    elif left[key] != right[key]:
                        modified.append(entry)
            if added or removed or modified:
                spaces.append(SpaceDiff(space, added, removed, modified))
        summary = DiffSummary(
            total_added=sum(len(s.added) for s in spaces),
            total_removed=sum(len(s.removed) for s in spaces),
            total_modified=sum(len(s.modified) for s in spaces),
        )
        return BranchDiffResult(branch_a, branch_b, summary, spaces)

    def merge(
        self,
        source: str,
        target: str,
        strategy: MergeStrategy = MergeStrategy.LAST_WRITER_WINS,
    ) -> MergeInfo:
        """Apply *source*'s live kv, json and state values onto *target*.

        Keys present on both sides with different values are conflicts: the
        source value wins under ``LAST_WRITER_WINS``; under ``STRICT`` any
        conflict aborts the merge before anything is written.
        """
        self._db.require_writable()
        src, dst = self._db.branch(source), self._db.branch(target)
        pending: list[tuple[PrimitiveType, str, str, Any]] = []
        conflicts: list[MergeConflict] = []
        for space in sorted(src.spaces):
            for primitive in _KEYED_PRIMITIVES:
                theirs = _live_values(dst, primitive, space)
                for key, value in _live_values(src, primitive, space).items():
                    if key not in theirs:
                        pending.append((primitive, space, key, value))
                    elif theirs[key] != value:
                        conflicts.append(
                            MergeConflict(
                                key=key,
                                primitive=primitive,
                                space=space,
                                source_value=value,
                                target_value=theirs[key],
                            )
                        )
                        pending.append((primitive, space, key, value))
        if conflicts and strategy is MergeStrategy.STRICT:
            raise StrataError(
                ErrorCode.CONFLICT,
                f"merge of {source} into {target} has {len(conflicts)} conflict(s)",
            )
        merged_spaces: set[str] = set()
        for primitive, space, key, value in pending:
            dst.spaces.add(space)
            dst.store(primitive).write(
                space,
                key,
                Entry(value=value, version=self._db.next_version(), timestamp=self._db.now()),
            )
            merged_spaces.add(space)
        dst.spaces |= src.spaces
        dst.info = replace(dst.info, updated_at=self._db.now())
        logger.info(
            "Merged %s into %s: %d keys, %d conflicts", source, target, len(pending), len(conflicts)
        )
        return MergeInfo(
            keys_applied=len(pending), spaces_merged=len(merged_spaces), conflicts=conflicts
        )
