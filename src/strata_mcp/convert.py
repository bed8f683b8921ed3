"""Conversion between wire JSON and the engine's value model.

``json_to_value`` / ``value_to_json`` map individual values; ``output_to_json``
flattens every engine ``Output`` variant into its JSON shape. The field
names produced here are a wire contract: clients read results by key.
"""

from __future__ import annotations

import base64
import math
from collections.abc import Callable
from typing import Any

from strata_mcp.engine import outputs as out
from strata_mcp.engine.types import (
    BranchInfo,
    CollectionInfo,
    SearchHit,
    VectorMatch,
    VersionedBranchInfo,
    VersionedValue,
)
from strata_mcp.errors import InvalidArgumentError

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

type JsonValue = None | bool | int | float | str | list[JsonValue] | dict[str, JsonValue]


def json_to_value(data: Any, name: str = "value") -> Any:
    """Convert a decoded JSON value into an engine value.

    Integers outside the signed 64-bit range fall back to float; numbers
    representable in neither (or non-finite floats) are rejected.
    """
    if data is None or isinstance(data, bool | str):
        return data
    if isinstance(data, int):
        if I64_MIN <= data <= I64_MAX:
            return data
        try:
            as_float = float(data)
        except OverflowError:
            raise InvalidArgumentError(name, "Number out of range") from None
        if not math.isfinite(as_float):
            raise InvalidArgumentError(name, "Number out of range")
        return as_float
    if isinstance(data, float):
        if not math.isfinite(data):
            raise InvalidArgumentError(name, "Number out of range")
        return data
    if isinstance(data, list):
        return [json_to_value(item, name) for item in data]
    if isinstance(data, dict):
        return {str(k): json_to_value(v, name) for k, v in data.items()}
    raise InvalidArgumentError(name, f"unsupported JSON type {type(data).__name__}")


def value_to_json(value: Any) -> JsonValue:
    """Convert an engine value back to JSON; bytes are base64 encoded."""
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    if isinstance(value, list | tuple):
        return [value_to_json(v) for v in value]
    if isinstance(value, dict):
        return {str(k): value_to_json(v) for k, v in value.items()}
    return value


def versioned_to_json(vv: VersionedValue) -> dict[str, JsonValue]:
    return {
        "value": value_to_json(vv.value),
        "version": vv.version,
        "timestamp": vv.timestamp,
    }


def _optional_metadata(metadata: Any) -> JsonValue:
    return None if metadata is None else value_to_json(metadata)


def _match_to_json(m: VectorMatch) -> dict[str, JsonValue]:
    return {"key": m.key, "score": m.score, "metadata": _optional_metadata(m.metadata)}


def _collection_to_json(c: CollectionInfo) -> dict[str, JsonValue]:
    return {
        "name": c.name,
        "dimension": c.dimension,
        "metric": c.metric.value.lower(),
        "count": c.count,
        "index_type": c.index_type,
        "memory_bytes": c.memory_bytes,
    }


def _branch_fields(info: BranchInfo) -> dict[str, JsonValue]:
    return {
        "id": info.id,
        "status": info.status.value.lower(),
        "created_at": info.created_at,
        "updated_at": info.updated_at,
        "parent_id": info.parent_id,
    }


def branch_info_to_json(bi: VersionedBranchInfo) -> dict[str, JsonValue]:
    return {**_branch_fields(bi.info), "version": bi.version, "timestamp": bi.timestamp}


def _hit_to_json(hit: SearchHit) -> dict[str, JsonValue]:
    return {
        "entity": hit.entity,
        "primitive": hit.primitive,
        "score": hit.score,
        "rank": hit.rank,
        "snippet": hit.snippet,
    }


def _json_list(o: out.JsonListResult) -> dict[str, JsonValue]:
    result: dict[str, JsonValue] = {"keys": list(o.keys)}
    if o.cursor is not None:
        result["cursor"] = o.cursor
    return result


def _vector_data(o: out.VectorData) -> JsonValue:
    if o.record is None:
        return None
    rec = o.record
    return {
        "key": rec.key,
        "embedding": list(rec.embedding),
        "metadata": _optional_metadata(rec.metadata),
        "version": rec.version,
        "timestamp": rec.timestamp,
    }


def _txn_info(o: out.TxnInfo) -> JsonValue:
    if o.info is None:
        return None
    return {
        "id": o.info.id,
        "status": o.info.status.value.lower(),
        "started_at": o.info.started_at,
    }


_CONVERTERS: dict[type[out.Output], Callable[[Any], JsonValue]] = {
    out.Unit: lambda o: None,
    out.Maybe: lambda o: value_to_json(o.value),
    out.MaybeVersioned: lambda o: None if o.value is None else versioned_to_json(o.value),
    out.MaybeVersion: lambda o: o.version,
    out.Version: lambda o: {"version": o.version},
    out.Bool: lambda o: bool(o.value),
    out.Uint: lambda o: o.value,
    out.VersionedValues: lambda o: [versioned_to_json(v) for v in o.values],
    out.VersionHistory: lambda o: (
        None if o.values is None else [versioned_to_json(v) for v in o.values]
    ),
    out.Keys: lambda o: list(o.keys),
    out.JsonListResult: _json_list,
    out.VectorMatches: lambda o: [_match_to_json(m) for m in o.matches],
    out.VectorData: _vector_data,
    out.VectorCollectionList: lambda o: [_collection_to_json(c) for c in o.collections],
    out.Versions: lambda o: list(o.versions),
    out.MaybeBranchInfo: lambda o: None if o.info is None else branch_info_to_json(o.info),
    out.BranchInfoList: lambda o: [branch_info_to_json(b) for b in o.branches],
    out.BranchWithVersion: lambda o: {**_branch_fields(o.info), "version": o.version},
    out.TxnInfo: _txn_info,
    out.TxnBegun: lambda o: {"status": "begun"},
    out.TxnCommitted: lambda o: {"status": "committed", "version": o.version},
    out.TxnAborted: lambda o: {"status": "aborted"},
    out.DatabaseInfo: lambda o: {
        "version": o.info.version,
        "uptime_secs": o.info.uptime_secs,
        "branch_count": o.info.branch_count,
        "total_keys": o.info.total_keys,
    },
    out.Pong: lambda o: {"pong": True, "version": o.version},
    out.SearchResults: lambda o: [_hit_to_json(h) for h in o.hits],
    out.SpaceList: lambda o: list(o.spaces),
    out.BranchExported: lambda o: {
        "branch_id": o.result.branch_id,
        "path": o.result.path,
        "entry_count": o.result.entry_count,
        "bundle_size": o.result.bundle_size,
    },
    out.BranchImported: lambda o: {
        "branch_id": o.result.branch_id,
        "transactions_applied": o.result.transactions_applied,
        "keys_written": o.result.keys_written,
    },
    out.BundleValidated: lambda o: {
        "branch_id": o.result.branch_id,
        "format_version": o.result.format_version,
        "entry_count": o.result.entry_count,
        "checksums_valid": o.result.checksums_valid,
    },
    out.TimeRange: lambda o: {"oldest_ts": o.oldest_ts, "latest_ts": o.latest_ts},
}


def output_to_json(output: out.Output) -> JsonValue:
    """Flatten an engine output into its JSON shape.

    Raises:
        TypeError: If *output* is not one of the known output variants.
    """
    converter = _CONVERTERS.get(type(output))
    if converter is None:
        raise TypeError(f"no JSON conversion for output {type(output).__name__}")
    return converter(output)


def supported_outputs() -> frozenset[type[out.Output]]:
    """Output variants that ``output_to_json`` knows how to convert."""
    return frozenset(_CONVERTERS)
