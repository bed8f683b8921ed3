"""Per-branch storage structures for the in-memory engine.

Every key keeps a chain of versions (oldest first). Deletes append a
tombstone so time-travel reads (``as_of``) see the key as it was.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from strata_mcp.engine.bundle import decode_value, encode_value
from strata_mcp.engine.errors import ErrorCode, StrataError
from strata_mcp.engine.types import (
    DEFAULT_SPACE,
    BranchInfo,
    BranchStatus,
    DistanceMetric,
    PrimitiveType,
)


@dataclass
class Entry:
    value: Any
    version: int
    timestamp: int
    deleted: bool = False


def latest(chain: list[Entry], as_of: int | None = None) -> Entry | None:
    """Newest live entry of *chain* visible at *as_of* (None = now)."""
    for entry in reversed(chain):
        if as_of is not None and entry.timestamp > as_of:
            continue
        return None if entry.deleted else entry
    return None


class VersionedStore:
    """Keys grouped by space, each holding its version chain."""

    def __init__(self) -> None:
        self.spaces: dict[str, dict[str, list[Entry]]] = {}

    def chain(self, space: str, key: str) -> list[Entry]:
        return self.spaces.get(space, {}).get(key, [])

    def write(self, space: str, key: str, entry: Entry) -> None:
        self.spaces.setdefault(space, {}).setdefault(key, []).append(entry)

    def latest(self, space: str, key: str, as_of: int | None = None) -> Entry | None:
        return latest(self.chain(space, key), as_of)

    def live(self, space: str, as_of: int | None = None) -> dict[str, Entry]:
        """Live keys of *space* in key order."""
        result: dict[str, Entry] = {}
        for key in sorted(self.spaces.get(space, {})):
            entry = self.latest(space, key, as_of)
            if entry is not None:
                result[key] = entry
        return result

    def history(self, space: str, key: str, as_of: int | None = None) -> list[Entry] | None:
        """Live versions newest first, or None when the key never existed."""
        chain = self.chain(space, key)
        if not chain:
            return None
        return [
            e
            for e in reversed(chain)
            if not e.deleted and (as_of is None or e.timestamp <= as_of)
        ]

    def has_live(self, space: str) -> bool:
        return any(latest(chain) is not None for chain in self.spaces.get(space, {}).values())

    def drop_space(self, space: str) -> None:
        self.spaces.pop(space, None)

    def items(self) -> Iterator[tuple[str, str, Entry]]:
        for space in sorted(self.spaces):
            for key in sorted(self.spaces[space]):
                for entry in self.spaces[space][key]:
                    yield space, key, entry

    def compact(self) -> int:
        """Drop keys whose newest entry is a tombstone. Returns keys removed."""
        removed = 0
        for keys in self.spaces.values():
            dead = [key for key, chain in keys.items() if chain and chain[-1].deleted]
            for key in dead:
                del keys[key]
            removed += len(dead)
        return removed

    def trim(self, max_versions: int) -> int:
        """Keep only the newest *max_versions* entries of every chain."""
        trimmed = 0
        for keys in self.spaces.values():
            for key, chain in keys.items():
                if len(chain) > max_versions:
                    trimmed += len(chain) - max_versions
                    keys[key] = chain[-max_versions:]
        return trimmed


@dataclass
class Event:
    sequence: int
    event_type: str
    payload: Any
    version: int
    timestamp: int


@dataclass
class Collection:
    name: str
    dimension: int
    metric: DistanceMetric
    version: int
    timestamp: int
    # key -> chain of {"embedding": [...], "metadata": ...}
    records: dict[str, list[Entry]] = field(default_factory=dict)

    def live(self, as_of: int | None = None) -> dict[str, Entry]:
        result: dict[str, Entry] = {}
        for key in sorted(self.records):
            entry = latest(self.records[key], as_of)
            if entry is not None:
                result[key] = entry
        return result


@dataclass
class BranchState:
    """Everything stored on one branch."""

    info: BranchInfo
    version: int
    timestamp: int
    spaces: set[str] = field(default_factory=lambda: {DEFAULT_SPACE})
    kv: VersionedStore = field(default_factory=VersionedStore)
    state: VersionedStore = field(default_factory=VersionedStore)
    json: VersionedStore = field(default_factory=VersionedStore)
    events: dict[str, list[Event]] = field(default_factory=dict)
    collections: dict[str, dict[str, Collection]] = field(default_factory=dict)

    def store(self, primitive: PrimitiveType) -> VersionedStore:
        stores = {
            PrimitiveType.KV: self.kv,
            PrimitiveType.STATE: self.state,
            PrimitiveType.JSON: self.json,
        }
        return stores[primitive]

    def space_has_data(self, space: str) -> bool:
        return (
            self.kv.has_live(space)
            or self.state.has_live(space)
            or self.json.has_live(space)
            or bool(self.events.get(space))
            or bool(self.collections.get(space))
        )

    def drop_space(self, space: str) -> None:
        for store in (self.kv, self.state, self.json):
            store.drop_space(space)
        self.events.pop(space, None)
        self.collections.pop(space, None)
        self.spaces.discard(space)

    def timestamps(self) -> Iterator[int]:
        for store in (self.kv, self.state, self.json):
            for _space, _key, entry in store.items():
                yield entry.timestamp
        for events in self.events.values():
            for event in events:
                yield event.timestamp
        for collections in self.collections.values():
            for coll in collections.values():
                yield coll.timestamp
                for chain in coll.records.values():
                    for entry in chain:
                        yield entry.timestamp

    def live_key_count(self) -> int:
        total = 0
        for store in (self.kv, self.state, self.json):
            for space in store.spaces:
                total += len(store.live(space))
        return total

    def record_count(self) -> int:
        """Live keys plus events and live vectors."""
        total = self.live_key_count()
        total += sum(len(events) for events in self.events.values())
        for collections in self.collections.values():
            total += sum(len(coll.live()) for coll in collections.values())
        return total

    # --- Bundle encoding ---

    def header(self) -> dict[str, Any]:
        return {
            "branch_id": self.info.id,
            "branch": {
                "status": self.info.status.value,
                "created_at": self.info.created_at,
                "updated_at": self.info.updated_at,
                "parent_id": self.info.parent_id,
                "metadata": encode_value(self.info.metadata),
                "version": self.version,
                "timestamp": self.timestamp,
            },
            "spaces": sorted(self.spaces),
        }

    def to_entries(self) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        for primitive in (PrimitiveType.KV, PrimitiveType.STATE, PrimitiveType.JSON):
            for space, key, entry in self.store(primitive).items():
                entries.append(
                    {
                        "primitive": primitive.value,
                        "space": space,
                        "key": key,
                        "value": encode_value(entry.value),
                        "version": entry.version,
                        "timestamp": entry.timestamp,
                        "deleted": entry.deleted,
                    }
                )
        for space in sorted(self.events):
            for event in self.events[space]:
                entries.append(
                    {
                        "primitive": PrimitiveType.EVENT.value,
                        "space": space,
                        "sequence": event.sequence,
                        "event_type": event.event_type,
                        "payload": encode_value(event.payload),
                        "version": event.version,
                        "timestamp": event.timestamp,
                    }
                )
        for space in sorted(self.collections):
            for name in sorted(self.collections[space]):
                coll = self.collections[space][name]
                entries.append(
                    {
                        "primitive": "collection",
                        "space": space,
                        "collection": name,
                        "dimension": coll.dimension,
                        "metric": coll.metric.value,
                        "version": coll.version,
                        "timestamp": coll.timestamp,
                    }
                )
                for key in sorted(coll.records):
                    for entry in coll.records[key]:
                        entries.append(
                            {
                                "primitive": PrimitiveType.VECTOR.value,
                                "space": space,
                                "collection": name,
                                "key": key,
                                "embedding": entry.value["embedding"],
                                "metadata": encode_value(entry.value["metadata"]),
                                "version": entry.version,
                                "timestamp": entry.timestamp,
                                "deleted": entry.deleted,
                            }
                        )
        return entries

    @classmethod
    def from_bundle(
        cls, header: dict[str, Any], entries: list[dict[str, Any]]
    ) -> BranchState:
        """Rebuild a branch from a bundle header and its entries."""
        try:
            meta = header["branch"]
            state = cls(
                info=BranchInfo(
                    id=header["branch_id"],
                    status=BranchStatus(meta["status"]),
                    created_at=meta["created_at"],
                    updated_at=meta["updated_at"],
                    parent_id=meta.get("parent_id"),
                    metadata=decode_value(meta.get("metadata")),
                ),
                version=meta["version"],
                timestamp=meta["timestamp"],
                spaces=set(header.get("spaces") or [DEFAULT_SPACE]),
            )
            for raw in entries:
                state._apply_entry(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise StrataError(
                ErrorCode.SERIALIZATION_ERROR, f"malformed bundle entry: {exc}"
            ) from exc
        return state

    def _apply_entry(self, raw: dict[str, Any]) -> None:
        primitive = raw["primitive"]
        space = raw["space"]
        self.spaces.add(space)
        if primitive in ("kv", "state", "json"):
            self.store(PrimitiveType(primitive)).write(
                space,
                raw["key"],
                Entry(
                    value=decode_value(raw["value"]),
                    version=raw["version"],
                    timestamp=raw["timestamp"],
                    deleted=bool(raw.get("deleted", False)),
                ),
            )
        elif primitive == "event":
            self.events.setdefault(space, []).append(
                Event(
                    sequence=raw["sequence"],
                    event_type=raw["event_type"],
                    payload=decode_value(raw["payload"]),
                    version=raw["version"],
                    timestamp=raw["timestamp"],
                )
            )
        elif primitive == "collection":
            self.collections.setdefault(space, {})[raw["collection"]] = Collection(
                name=raw["collection"],
                dimension=raw["dimension"],
                metric=DistanceMetric(raw["metric"]),
                version=raw["version"],
                timestamp=raw["timestamp"],
            )
        elif primitive == "vector":
            coll = self.collections[space][raw["collection"]]
            coll.records.setdefault(raw["key"], []).append(
                Entry(
                    value={
                        "embedding": [float(x) for x in raw["embedding"]],
                        "metadata": decode_value(raw.get("metadata")),
                    },
                    version=raw["version"],
                    timestamp=raw["timestamp"],
                    deleted=bool(raw.get("deleted", False)),
                )
            )
        else:
            raise ValueError(f"unknown primitive {primitive!r}")

    def max_version(self) -> int:
        versions = [self.version]
        for store in (self.kv, self.state, self.json):
            versions.extend(entry.version for _s, _k, entry in store.items())
        for events in self.events.values():
            versions.extend(event.version for event in events)
        for collections in self.collections.values():
            for coll in collections.values():
                versions.append(coll.version)
                for chain in coll.records.values():
                    versions.extend(entry.version for entry in chain)
        return max(versions)
