"""Portable bundle files.

A bundle is a gzip-compressed JSON document holding one branch: a header
(``format_version``, ``branch_id``, branch metadata, spaces) and a flat list
of entries, protected by a SHA-256 checksum over the canonical entry list.
The same encoding backs the on-disk snapshot of a database opened with a
path.
"""

from __future__ import annotations

import base64
import gzip
import hashlib
import json
import logging
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from strata_mcp.engine.errors import ErrorCode, StrataError

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1
BYTES_TAG = "$bytes"


def encode_value(value: Any) -> Any:
    """Make a stored value JSON-safe; bytes become ``{"$bytes": <base64>}``."""
    if isinstance(value, bytes):
        return {BYTES_TAG: base64.b64encode(value).decode("ascii")}
    if isinstance(value, list):
        return [encode_value(v) for v in value]
    if isinstance(value, dict):
        return {k: encode_value(v) for k, v in value.items()}
    return value


def decode_value(raw: Any) -> Any:
    """Inverse of :func:`encode_value`."""
    if isinstance(raw, dict):
        if len(raw) == 1 and isinstance(raw.get(BYTES_TAG), str):
            return base64.b64decode(raw[BYTES_TAG])
        return {k: decode_value(v) for k, v in raw.items()}
    if isinstance(raw, list):
        return [decode_value(v) for v in raw]
    return raw


def checksum(entries: list[dict[str, Any]]) -> str:
    """SHA-256 over the canonical (sorted, compact) JSON form of *entries*."""
    canonical = json.dumps(entries, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class Bundle:
    """A decoded bundle document."""

    format_version: int
    branch_id: str
    header: dict[str, Any] = field(default_factory=dict)
    entries: list[dict[str, Any]] = field(default_factory=list)
    checksum_valid: bool = True

    @property
    def entry_count(self) -> int:
        return len(self.entries)


def write_document(path: Path, document: dict[str, Any]) -> int:
    """Write *document* gzip-compressed to *path*; return the file size in bytes."""
    payload = json.dumps(document, separators=(",", ":")).encode("utf-8")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(gzip.compress(payload))
        size = path.stat().st_size
    except OSError as exc:
        raise StrataError(ErrorCode.IO_ERROR, f"cannot write {path}: {exc}") from exc
    logger.debug("Wrote %s (%d bytes)", path, size)
    return size


def read_document(path: Path) -> dict[str, Any]:
    """Read a gzip-compressed JSON document written by :func:`write_document`."""
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise StrataError(ErrorCode.IO_ERROR, f"cannot read {path}: {exc}") from exc
    try:
        document = json.loads(gzip.decompress(raw))
    except (OSError, EOFError, zlib.error, ValueError) as exc:
        raise StrataError(
            ErrorCode.SERIALIZATION_ERROR, f"{path} is not a valid bundle: {exc}"
        ) from exc
    if not isinstance(document, dict):
        raise StrataError(ErrorCode.SERIALIZATION_ERROR, f"{path} is not a valid bundle")
    return document


def make_document(header: dict[str, Any], entries: list[dict[str, Any]]) -> dict[str, Any]:
    """Assemble a bundle document from a branch header and its entries."""
    return {
        **header,
        "format_version": FORMAT_VERSION,
        "entry_count": len(entries),
        "checksum": checksum(entries),
        "entries": entries,
    }


def write_bundle(path: Path, header: dict[str, Any], entries: list[dict[str, Any]]) -> int:
    """Write a single-branch bundle; return its size in bytes."""
    return write_document(path, make_document(header, entries))


def bundle_from_document(document: dict[str, Any], *, source: str = "bundle") -> Bundle:
    """Validate the structure of a bundle document and wrap it."""
    version = document.get("format_version")
    if not isinstance(version, int) or isinstance(version, bool):
        raise StrataError(ErrorCode.SERIALIZATION_ERROR, f"{source}: missing format_version")
    if version > FORMAT_VERSION:
        raise StrataError(
            ErrorCode.INVALID_INPUT,
            f"{source}: unsupported format_version {version} (max {FORMAT_VERSION})",
        )
    branch_id = document.get("branch_id")
    entries = document.get("entries")
    if not isinstance(branch_id, str) or not isinstance(entries, list):
        raise StrataError(ErrorCode.SERIALIZATION_ERROR, f"{source}: malformed bundle header")
    header = {k: v for k, v in document.items() if k != "entries"}
    return Bundle(
        format_version=version,
        branch_id=branch_id,
        header=header,
        entries=entries,
        checksum_valid=document.get("checksum") == checksum(entries),
    )


def read_bundle(path: Path) -> Bundle:
    """Read and structurally validate a bundle file."""
    return bundle_from_document(read_document(path), source=str(path))
