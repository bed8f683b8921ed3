"""Enums and record types shared by engine commands and outputs.

Records are frozen dataclasses; values held in them use the plain Python
value model (None, bool, int, float, str, bytes, list, dict).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

DEFAULT_BRANCH = "default"
DEFAULT_SPACE = "default"


class AccessMode(StrEnum):
    """How a database was opened."""

    READ_WRITE = "read_write"
    READ_ONLY = "read_only"


class DistanceMetric(StrEnum):
    """Similarity metric for a vector collection.

    Values are the lower-cased variant names reported on the wire.
    """

    COSINE = "cosine"
    EUCLIDEAN = "euclidean"
    DOT_PRODUCT = "dotproduct"


class FilterOp(StrEnum):
    """Comparison operator for a metadata filter."""

    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IN = "in"
    CONTAINS = "contains"


class MergeStrategy(StrEnum):
    """Conflict policy for branch merges."""

    LAST_WRITER_WINS = "last_writer_wins"
    STRICT = "strict"


class BranchStatus(StrEnum):
    """Lifecycle status of a branch."""

    ACTIVE = "active"
    CLOSED = "closed"


class TxnStatus(StrEnum):
    """Status of an open transaction."""

    ACTIVE = "active"


class PrimitiveType(StrEnum):
    """Data models stored per branch and space."""

    KV = "kv"
    JSON = "json"
    EVENT = "event"
    STATE = "state"
    VECTOR = "vector"

    @property
    def label(self) -> str:
        """Variant name as used in diff and merge reports (``Kv``, ``Json``...)."""
        return self.value.capitalize()


class SearchMode(StrEnum):
    """Ranking mode for cross-primitive search."""

    KEYWORD = "keyword"
    HYBRID = "hybrid"


# --- Value records ---


@dataclass(frozen=True)
class VersionedValue:
    value: Any
    version: int
    timestamp: int


@dataclass(frozen=True)
class VectorMatch:
    key: str
    score: float
    metadata: Any = None


@dataclass(frozen=True)
class VectorRecord:
    key: str
    embedding: list[float]
    metadata: Any
    version: int
    timestamp: int


@dataclass(frozen=True)
class CollectionInfo:
    name: str
    dimension: int
    metric: DistanceMetric
    count: int
    index_type: str
    memory_bytes: int


@dataclass(frozen=True)
class BranchInfo:
    id: str
    status: BranchStatus
    created_at: int
    updated_at: int
    parent_id: str | None = None
    metadata: Any = None


@dataclass(frozen=True)
class VersionedBranchInfo:
    info: BranchInfo
    version: int
    timestamp: int


@dataclass(frozen=True)
class TxnInfoRecord:
    id: int
    status: TxnStatus
    started_at: int


@dataclass(frozen=True)
class DatabaseStats:
    version: str
    uptime_secs: int
    branch_count: int
    total_keys: int


@dataclass(frozen=True)
class SearchHit:
    entity: str
    primitive: str
    score: float
    rank: int
    snippet: str | None = None


@dataclass(frozen=True)
class ExportInfo:
    branch_id: str
    path: str
    entry_count: int
    bundle_size: int


@dataclass(frozen=True)
class ImportInfo:
    branch_id: str
    transactions_applied: int
    keys_written: int


@dataclass(frozen=True)
class ValidateInfo:
    branch_id: str
    format_version: int
    entry_count: int
    checksums_valid: bool


# --- Command parameters ---


@dataclass(frozen=True)
class MetadataFilter:
    field: str
    op: FilterOp
    value: Any


@dataclass(frozen=True)
class BatchVectorEntry:
    key: str
    vector: list[float]
    metadata: Any = None


@dataclass(frozen=True)
class TxnOptions:
    read_only: bool = False


@dataclass(frozen=True)
class SearchTimeRange:
    """Inclusive bounds in microseconds since the epoch."""

    start: int
    end: int


# --- Branch power API results ---


@dataclass(frozen=True)
class ForkInfo:
    source: str
    destination: str
    keys_copied: int


@dataclass(frozen=True)
class BranchDiffEntry:
    key: str
    primitive: PrimitiveType
    space: str
    value_a: Any = None
    value_b: Any = None


@dataclass(frozen=True)
class SpaceDiff:
    space: str
    added: list[BranchDiffEntry] = field(default_factory=list)
    removed: list[BranchDiffEntry] = field(default_factory=list)
    modified: list[BranchDiffEntry] = field(default_factory=list)


@dataclass(frozen=True)
class DiffSummary:
    total_added: int
    total_removed: int
    total_modified: int


@dataclass(frozen=True)
class BranchDiffResult:
    branch_a: str
    branch_b: str
    summary: DiffSummary
    spaces: list[SpaceDiff]


@dataclass(frozen=True)
class MergeConflict:
    key: str
    primitive: PrimitiveType
    space: str
    source_value: Any = None
    target_value: Any = None


@dataclass(frozen=True)
class MergeInfo:
    keys_applied: int
    spaces_merged: int
    conflicts: list[MergeConflict] = field(default_factory=list)
