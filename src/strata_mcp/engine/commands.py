"""Engine commands: one frozen dataclass per operation.

``branch`` and ``space`` default to None, which the engine resolves to the
``default`` branch / space. ``WRITES`` marks commands that mutate data and
are therefore rejected on a read-only database.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from strata_mcp.engine.types import (
    BatchVectorEntry,
    DistanceMetric,
    MetadataFilter,
    SearchMode,
    SearchTimeRange,
    TxnOptions,
)


@dataclass(frozen=True, kw_only=True)
class Command:
    """Base for every engine command."""

    WRITES: ClassVar[bool] = False


# --- Database ---


@dataclass(frozen=True, kw_only=True)
class Ping(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class Info(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class Flush(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class Compact(Command):
    WRITES: ClassVar[bool] = True


@dataclass(frozen=True, kw_only=True)
class TimeRange(Command):
    branch: str | None = None


# --- Key-value ---


@dataclass(frozen=True, kw_only=True)
class KvPut(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    key: str
    value: Any


@dataclass(frozen=True, kw_only=True)
class KvGet(Command):
    branch: str | None = None
    space: str | None = None
    key: str


@dataclass(frozen=True, kw_only=True)
class KvDelete(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    key: str


@dataclass(frozen=True, kw_only=True)
class KvList(Command):
    branch: str | None = None
    space: str | None = None
    prefix: str | None = None
    cursor: str | None = None
    limit: int | None = None


@dataclass(frozen=True, kw_only=True)
class KvGetv(Command):
    branch: str | None = None
    space: str | None = None
    key: str


# --- State cells ---


@dataclass(frozen=True, kw_only=True)
class StateSet(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    cell: str
    value: Any


@dataclass(frozen=True, kw_only=True)
class StateGet(Command):
    branch: str | None = None
    space: str | None = None
    cell: str
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class StateDelete(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    cell: str


@dataclass(frozen=True, kw_only=True)
class StateInit(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    cell: str
    value: Any


@dataclass(frozen=True, kw_only=True)
class StateCas(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    cell: str
    expected_counter: int | None = None
    value: Any


@dataclass(frozen=True, kw_only=True)
class StateList(Command):
    branch: str | None = None
    space: str | None = None
    prefix: str | None = None
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class StateGetv(Command):
    branch: str | None = None
    space: str | None = None
    cell: str
    as_of: int | None = None


# --- Event log ---


@dataclass(frozen=True, kw_only=True)
class EventAppend(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    event_type: str
    payload: Any


@dataclass(frozen=True, kw_only=True)
class EventGet(Command):
    branch: str | None = None
    space: str | None = None
    sequence: int


@dataclass(frozen=True, kw_only=True)
class EventGetByType(Command):
    branch: str | None = None
    space: str | None = None
    event_type: str
    limit: int | None = None
    after_sequence: int | None = None


@dataclass(frozen=True, kw_only=True)
class EventLen(Command):
    branch: str | None = None
    space: str | None = None


# --- JSON documents ---


@dataclass(frozen=True, kw_only=True)
class JsonSet(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    key: str
    path: str
    value: Any


@dataclass(frozen=True, kw_only=True)
class JsonGet(Command):
    branch: str | None = None
    space: str | None = None
    key: str
    path: str


@dataclass(frozen=True, kw_only=True)
class JsonDelete(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    key: str
    path: str


@dataclass(frozen=True, kw_only=True)
class JsonList(Command):
    branch: str | None = None
    space: str | None = None
    prefix: str | None = None
    cursor: str | None = None
    limit: int = 100


@dataclass(frozen=True, kw_only=True)
class JsonGetv(Command):
    branch: str | None = None
    space: str | None = None
    key: str


# --- Spaces ---


@dataclass(frozen=True, kw_only=True)
class SpaceList(Command):
    branch: str | None = None


@dataclass(frozen=True, kw_only=True)
class SpaceCreate(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str


@dataclass(frozen=True, kw_only=True)
class SpaceDelete(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str
    force: bool = False


@dataclass(frozen=True, kw_only=True)
class SpaceExists(Command):
    branch: str | None = None
    space: str


# --- Branches ---


@dataclass(frozen=True, kw_only=True)
class BranchCreate(Command):
    WRITES: ClassVar[bool] = True

    branch_id: str | None = None
    metadata: Any = None


@dataclass(frozen=True, kw_only=True)
class BranchGet(Command):
    branch: str


@dataclass(frozen=True, kw_only=True)
class BranchList(Command):
    state: str | None = None
    limit: int | None = None
    offset: int | None = None


@dataclass(frozen=True, kw_only=True)
class BranchExists(Command):
    branch: str


@dataclass(frozen=True, kw_only=True)
class BranchDelete(Command):
    WRITES: ClassVar[bool] = True

    branch: str


# --- Vectors ---


@dataclass(frozen=True, kw_only=True)
class VectorUpsert(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    collection: str
    key: str
    vector: list[float]
    metadata: Any = None


@dataclass(frozen=True, kw_only=True)
class VectorGet(Command):
    branch: str | None = None
    space: str | None = None
    collection: str
    key: str
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class VectorDelete(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    collection: str
    key: str


@dataclass(frozen=True, kw_only=True)
class VectorSearch(Command):
    branch: str | None = None
    space: str | None = None
    collection: str
    query: list[float]
    k: int
    filter: list[MetadataFilter] | None = None
    metric: DistanceMetric | None = None
    as_of: int | None = None


@dataclass(frozen=True, kw_only=True)
class VectorCreateCollection(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    collection: str
    dimension: int
    metric: DistanceMetric = DistanceMetric.COSINE


@dataclass(frozen=True, kw_only=True)
class VectorDeleteCollection(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    collection: str


@dataclass(frozen=True, kw_only=True)
class VectorListCollections(Command):
    branch: str | None = None
    space: str | None = None


@dataclass(frozen=True, kw_only=True)
class VectorCollectionStats(Command):
    branch: str | None = None
    space: str | None = None
    collection: str


@dataclass(frozen=True, kw_only=True)
class VectorBatchUpsert(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None
    space: str | None = None
    collection: str
    entries: list[BatchVectorEntry]


# --- Transactions ---


@dataclass(frozen=True, kw_only=True)
class TxnBegin(Command):
    branch: str | None = None
    options: TxnOptions | None = None


@dataclass(frozen=True, kw_only=True)
class TxnCommit(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class TxnRollback(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class TxnInfo(Command):
    pass


@dataclass(frozen=True, kw_only=True)
class TxnIsActive(Command):
    pass


# --- Search ---


@dataclass(frozen=True, kw_only=True)
class Search(Command):
    branch: str | None = None
    space: str | None = None
    query: str
    k: int | None = None
    primitives: list[str] | None = None
    mode: SearchMode | None = None
    expand: bool | None = None
    rerank: bool | None = None
    time_range: SearchTimeRange | None = None


# --- Bundles ---


@dataclass(frozen=True, kw_only=True)
class BranchExport(Command):
    branch_id: str
    path: str


@dataclass(frozen=True, kw_only=True)
class BranchImport(Command):
    WRITES: ClassVar[bool] = True

    path: str


@dataclass(frozen=True, kw_only=True)
class BranchBundleValidate(Command):
    path: str


# --- Retention and configuration ---


@dataclass(frozen=True, kw_only=True)
class RetentionApply(Command):
    WRITES: ClassVar[bool] = True

    branch: str | None = None


@dataclass(frozen=True, kw_only=True)
class ConfigureModel(Command):
    endpoint: str
    model: str
    api_key: str | None = None
    timeout_ms: int | None = None
