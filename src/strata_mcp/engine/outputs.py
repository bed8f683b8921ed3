"""Engine outputs: the closed set of result shapes a command can produce.

``OUTPUT_TYPES`` lists every variant; converters that flatten outputs to
JSON are expected to cover all of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from strata_mcp.engine.types import (
    BranchInfo,
    CollectionInfo,
    DatabaseStats,
    ExportInfo,
    ImportInfo,
    SearchHit,
    TxnInfoRecord,
    ValidateInfo,
    VectorMatch,
    VectorRecord,
    VersionedBranchInfo,
    VersionedValue,
)


@dataclass(frozen=True)
class Output:
    """Base for every engine output."""


@dataclass(frozen=True)
class Unit(Output):
    pass


@dataclass(frozen=True)
class Maybe(Output):
    value: Any = None


@dataclass(frozen=True)
class MaybeVersioned(Output):
    value: VersionedValue | None = None


@dataclass(frozen=True)
class MaybeVersion(Output):
    version: int | None = None


@dataclass(frozen=True)
class Version(Output):
    version: int


@dataclass(frozen=True)
class Bool(Output):
    value: bool


@dataclass(frozen=True)
class Uint(Output):
    value: int


@dataclass(frozen=True)
class VersionedValues(Output):
    values: list[VersionedValue] = field(default_factory=list)


@dataclass(frozen=True)
class VersionHistory(Output):
    values: list[VersionedValue] | None = None


@dataclass(frozen=True)
class Keys(Output):
    keys: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class JsonListResult(Output):
    keys: list[str] = field(default_factory=list)
    cursor: str | None = None


@dataclass(frozen=True)
class VectorMatches(Output):
    matches: list[VectorMatch] = field(default_factory=list)


@dataclass(frozen=True)
class VectorData(Output):
    record: VectorRecord | None = None


@dataclass(frozen=True)
class VectorCollectionList(Output):
    collections: list[CollectionInfo] = field(default_factory=list)


@dataclass(frozen=True)
class Versions(Output):
    versions: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class MaybeBranchInfo(Output):
    info: VersionedBranchInfo | None = None


@dataclass(frozen=True)
class BranchInfoList(Output):
    branches: list[VersionedBranchInfo] = field(default_factory=list)


@dataclass(frozen=True)
class BranchWithVersion(Output):
    info: BranchInfo
    version: int


@dataclass(frozen=True)
class TxnInfo(Output):
    info: TxnInfoRecord | None = None


@dataclass(frozen=True)
class TxnBegun(Output):
    pass


@dataclass(frozen=True)
class TxnCommitted(Output):
    version: int


@dataclass(frozen=True)
class TxnAborted(Output):
    pass


@dataclass(frozen=True)
class DatabaseInfo(Output):
    info: DatabaseStats


@dataclass(frozen=True)
class Pong(Output):
    version: str


@dataclass(frozen=True)
class SearchResults(Output):
    hits: list[SearchHit] = field(default_factory=list)


@dataclass(frozen=True)
class SpaceList(Output):
    spaces: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BranchExported(Output):
    result: ExportInfo


@dataclass(frozen=True)
class BranchImported(Output):
    result: ImportInfo


@dataclass(frozen=True)
class BundleValidated(Output):
    result: ValidateInfo


@dataclass(frozen=True)
class TimeRange(Output):
    oldest_ts: int | None = None
    latest_ts: int | None = None


OUTPUT_TYPES: tuple[type[Output], ...] = (
    Unit,
    Maybe,
    MaybeVersioned,
    MaybeVersion,
    Version,
    Bool,
    Uint,
    VersionedValues,
    VersionHistory,
    Keys,
    JsonListResult,
    VectorMatches,
    VectorData,
    VectorCollectionList,
    Versions,
    MaybeBranchInfo,
    BranchInfoList,
    BranchWithVersion,
    TxnInfo,
    TxnBegun,
    TxnCommitted,
    TxnAborted,
    DatabaseInfo,
    Pong,
    SearchResults,
    SpaceList,
    BranchExported,
    BranchImported,
    BundleValidated,
    TimeRange,
)
