"""JSON-RPC 2.0 envelopes for the MCP stdio transport.

INVARIANT: A response carries either ``result`` or ``error``, never both.
A success response always serialises ``result`` (``null`` included); the
``id`` member is omitted when the request had none.
"""

from __future__ import annotations

import json
from typing import Any, Self

from mcp.types import ErrorData
from pydantic import BaseModel, model_validator

from strata_mcp import __version__
from strata_mcp.errors import McpError

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "strata-mcp"
SERVER_VERSION = __version__

type RequestId = Any


def dumps(value: Any) -> str:
    """Compact JSON, one line, non-ASCII kept as-is; NaN and infinities are rejected."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


class JsonRpcRequest(BaseModel):
    """An incoming request (or notification, when ``id`` is absent)."""

    model_config = {"frozen": True}

    jsonrpc: str
    id: Any = None
    method: str
    params: Any = None


class JsonRpcResponse(BaseModel):
    """An outgoing response.

    Attributes:
        id: Echo of the request id; ``None`` for parse errors.
        result: Method result on success (may legitimately be ``None``).
        error: Error object on failure.
    """

    model_config = {"frozen": True}

    jsonrpc: str = JSONRPC_VERSION
    id: Any = None
    result: Any = None
    error: ErrorData | None = None

    @model_validator(mode="after")
    def _result_xor_error(self) -> Self:
        if self.error is not None and self.result is not None:
            raise ValueError("a response cannot carry both result and error")
        return self

    @classmethod
    def success(cls, id: RequestId, result: Any) -> JsonRpcResponse:
        return cls(id=id, result=result)

    @classmethod
    def failure(
        cls, id: RequestId, code: int, message: str, data: Any = None
    ) -> JsonRpcResponse:
        return cls(id=id, error=ErrorData(code=int(code), message=message, data=data))

    @classmethod
    def from_error(cls, id: RequestId, exc: McpError) -> JsonRpcResponse:
        return cls.failure(id, exc.rpc_code, str(exc), exc.data())

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_wire(self) -> dict[str, Any]:
        wire: dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if self.id is not None:
            wire["id"] = self.id
        if self.error is not None:
            error: dict[str, Any] = {"code": self.error.code, "message": self.error.message}
            if self.error.data is not None:
                error["data"] = self.error.data
            wire["error"] = error
        else:
            wire["result"] = self.result
        return wire

    def to_line(self) -> str:
        """Serialise as a single compact JSON line (no trailing newline)."""
        return dumps(self.to_wire())
