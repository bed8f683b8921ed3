"""Tests for the gzip JSON bundle format."""

from __future__ import annotations

import gzip
import json
from pathlib import Path

import pytest

from strata_mcp.engine.bundle import (
    FORMAT_VERSION,
    checksum,
    decode_value,
    encode_value,
    read_bundle,
    write_bundle,
)
from strata_mcp.engine.errors import ErrorCode, StrataError

HEADER = {"branch_id": "main", "spaces": ["default"]}
ENTRIES = [{"primitive": "kv", "space": "default", "key": "k", "value": 1, "version": 1}]


class TestValueEncoding:
    def test_bytes_are_tagged(self) -> None:
        assert encode_value({"raw": b"\x01\x02"}) == {"raw": {"$bytes": "AQI="}}

    def test_round_trip_keeps_bytes(self) -> None:
        value = {"list": [b"abc", 1, None], "s": "text"}
        assert decode_value(encode_value(value)) == value

    def test_plain_dict_with_extra_keys_is_not_bytes(self) -> None:
        raw = {"$bytes": "AQI=", "other": 1}
        assert decode_value(raw) == raw


class TestChecksum:
    def test_key_order_does_not_matter(self) -> None:
        assert checksum([{"a": 1, "b": 2}]) == checksum([{"b": 2, "a": 1}])

    def test_content_matters(self) -> None:
        assert checksum([{"a": 1}]) != checksum([{"a": 2}])


class TestReadWrite:
    def test_write_then_read(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "main.bundle"
        size = write_bundle(path, HEADER, ENTRIES)
        assert size == path.stat().st_size
        bundle = read_bundle(path)
        assert bundle.branch_id == "main"
        assert bundle.format_version == FORMAT_VERSION
        assert bundle.entries == ENTRIES
        assert bundle.entry_count == 1
        assert bundle.checksum_valid is True

    def test_tampered_entries_fail_checksum(self, tmp_path: Path) -> None:
        path = tmp_path / "main.bundle"
        write_bundle(path, HEADER, ENTRIES)
        document = json.loads(gzip.decompress(path.read_bytes()))
        document["entries"][0]["value"] = 2
        path.write_bytes(gzip.compress(json.dumps(document).encode()))
        assert read_bundle(path).checksum_valid is False

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(StrataError) as exc_info:
            read_bundle(tmp_path / "absent.bundle")
        assert exc_info.value.code is ErrorCode.IO_ERROR

    def test_not_gzip(self, tmp_path: Path) -> None:
        path = tmp_path / "plain.bundle"
        path.write_text("{}")
        with pytest.raises(StrataError) as exc_info:
            read_bundle(path)
        assert exc_info.value.code is ErrorCode.SERIALIZATION_ERROR

    def test_missing_header(self, tmp_path: Path) -> None:
        path = tmp_path / "headless.bundle"
        path.write_bytes(gzip.compress(b'{"format_version": 1}'))
        with pytest.raises(StrataError) as exc_info:
            read_bundle(path)
        assert exc_info.value.code is ErrorCode.SERIALIZATION_ERROR

    def test_future_format_version(self, tmp_path: Path) -> None:
        path = tmp_path / "future.bundle"
        document = {"format_version": FORMAT_VERSION + 1, "branch_id": "b", "entries": []}
        path.write_bytes(gzip.compress(json.dumps(document).encode()))
        with pytest.raises(StrataError) as exc_info:
            read_bundle(path)
        assert exc_info.value.code is ErrorCode.INVALID_INPUT
