"""Tests for JSON-RPC envelope models."""

from __future__ import annotations

import json
from typing import Any

import pytest
from mcp.types import ErrorData
from pydantic import ValidationError

from strata_mcp.errors import MissingArgumentError, RpcCode
from strata_mcp.protocol import (
    JsonRpcRequest,
    JsonRpcResponse,
    dumps,
)


class TestRequest:
    def test_minimal(self) -> None:
        request = JsonRpcRequest.model_validate({"jsonrpc": "2.0", "method": "ping"})
        assert request.id is None
        assert request.params is None

    @pytest.mark.parametrize("rid", [7, "abc", 1.5, 2.0])
    def test_id_kinds(self, rid: int | str | float) -> None:
        request = JsonRpcRequest.model_validate({"jsonrpc": "2.0", "id": rid, "method": "ping"})
        assert request.id == rid
        assert type(request.id) is type(rid)

    def test_method_required(self) -> None:
        with pytest.raises(ValidationError):
            JsonRpcRequest.model_validate({"jsonrpc": "2.0", "id": 1})


class TestResponse:
    def test_success_wire(self) -> None:
        response = JsonRpcResponse.success(1, {"a": 1})
        assert response.ok
        assert response.to_wire() == {"jsonrpc": "2.0", "id": 1, "result": {"a": 1}}

    def test_null_result_is_serialised(self) -> None:
        assert JsonRpcResponse.success(2, None).to_wire() == {
            "jsonrpc": "2.0",
            "id": 2,
            "result": None,
        }

    def test_failure_without_id(self) -> None:
        response = JsonRpcResponse.failure(None, RpcCode.PARSE_ERROR, "Parse error: x")
        assert not response.ok
        assert response.to_wire() == {
            "jsonrpc": "2.0",
            "error": {"code": -32700, "message": "Parse error: x"},
        }

    def test_failure_code_is_plain_int(self) -> None:
        response = JsonRpcResponse.failure(1, RpcCode.INTERNAL_ERROR, "boom")
        assert type(response.error.code) is int

    def test_from_error_carries_data(self) -> None:
        response = JsonRpcResponse.from_error("r", MissingArgumentError("key"))
        assert response.to_wire()["error"] == {
            "code": -32602,
            "message": "missing required argument: key",
            "data": {"argument": "key"},
        }

    def test_result_and_error_are_exclusive(self) -> None:
        with pytest.raises(ValidationError):
            JsonRpcResponse(id=1, result=1, error=ErrorData(code=-32603, message="x"))

    def test_to_line_is_compact(self) -> None:
        line = JsonRpcResponse.success(1, {"text": "héllo"}).to_line()
        assert "\n" not in line
        assert " " not in line.replace("héllo", "")
        assert json.loads(line)["result"]["text"] == "héllo"


class TestDumps:
    def test_compact_separators(self) -> None:
        assert dumps({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_keeps_unicode(self) -> None:
        assert dumps("ü") == '"ü"'

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), {"score": float("-inf")}])
    def test_rejects_non_finite_numbers(self, value: Any) -> None:
        with pytest.raises(ValueError):
            dumps(value)
