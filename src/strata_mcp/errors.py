"""MCP-level errors and their JSON-RPC error codes.

Every failure inside a request is raised as an ``McpError`` subclass and
converted to a JSON-RPC error object at the request boundary by the server.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from strata_mcp.engine.errors import ErrorCode


class RpcCode(IntEnum):
    """JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


# Engine codes reported to the client as bad parameters rather than server faults.
_INVALID_PARAMS_CODES = frozenset(
    {
        ErrorCode.KEY_NOT_FOUND,
        ErrorCode.BRANCH_NOT_FOUND,
        ErrorCode.COLLECTION_NOT_FOUND,
        ErrorCode.CELL_NOT_FOUND,
        ErrorCode.DOCUMENT_NOT_FOUND,
        ErrorCode.STREAM_NOT_FOUND,
        ErrorCode.INVALID_KEY,
        ErrorCode.INVALID_PATH,
        ErrorCode.INVALID_INPUT,
        ErrorCode.WRONG_TYPE,
    }
)


class McpError(Exception):
    """Base class for errors answered with a JSON-RPC error response."""

    rpc_code: RpcCode = RpcCode.INTERNAL_ERROR

    def data(self) -> dict[str, Any] | None:
        """Structured details for the ``error.data`` field, if any."""
        return None


class DatabaseError(McpError):
    """A failure reported by the database engine.

    Attributes:
        code: The engine's stable error code (e.g. ``"KEY_NOT_FOUND"``).
        message: The engine's message, kept verbatim.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"strata error: {message}")
        self.code = code
        self.message = message

    @property
    def rpc_code(self) -> RpcCode:  # type: ignore[override]
        if self.code in _INVALID_PARAMS_CODES:
            return RpcCode.INVALID_PARAMS
        return RpcCode.INTERNAL_ERROR

    def data(self) -> dict[str, Any]:
        return {"code": self.code}


class UnknownToolError(McpError):
    rpc_code = RpcCode.METHOD_NOT_FOUND

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown tool: {name}")
        self.name = name

    def data(self) -> dict[str, Any]:
        return {"tool": self.name}


class MissingArgumentError(McpError):
    rpc_code = RpcCode.INVALID_PARAMS

    def __init__(self, name: str) -> None:
        super().__init__(f"missing required argument: {name}")
        self.name = name

    def data(self) -> dict[str, Any]:
        return {"argument": self.name}


class InvalidArgumentError(McpError):
    rpc_code = RpcCode.INVALID_PARAMS

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(f"invalid argument '{name}': {reason}")
        self.name = name
        self.reason = reason

    def data(self) -> dict[str, Any]:
        return {"argument": self.name}


class BranchNotFoundError(McpError):
    """Raised when switching to a branch that does not exist."""

    rpc_code = RpcCode.INVALID_PARAMS

    def __init__(self, name: str) -> None:
        super().__init__(f"branch not found: {name}")
        self.name = name


class ProtocolError(McpError):
    """Malformed JSON-RPC envelope."""

    rpc_code = RpcCode.INVALID_REQUEST


class InternalError(McpError):
    rpc_code = RpcCode.INTERNAL_ERROR
