"""Engine error contract.

Every failure raised by a database session carries a stable string code
(``ErrorCode``) plus a human-readable message. Callers dispatch on the
code, never on the message text.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Stable error codes surfaced by the engine."""

    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    BRANCH_NOT_FOUND = "BRANCH_NOT_FOUND"
    COLLECTION_NOT_FOUND = "COLLECTION_NOT_FOUND"
    STREAM_NOT_FOUND = "STREAM_NOT_FOUND"
    CELL_NOT_FOUND = "CELL_NOT_FOUND"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    WRONG_TYPE = "WRONG_TYPE"
    INVALID_KEY = "INVALID_KEY"
    INVALID_PATH = "INVALID_PATH"
    INVALID_INPUT = "INVALID_INPUT"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    TRANSITION_FAILED = "TRANSITION_FAILED"
    CONFLICT = "CONFLICT"
    BRANCH_CLOSED = "BRANCH_CLOSED"
    BRANCH_EXISTS = "BRANCH_EXISTS"
    COLLECTION_EXISTS = "COLLECTION_EXISTS"
    DIMENSION_MISMATCH = "DIMENSION_MISMATCH"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"
    HISTORY_TRIMMED = "HISTORY_TRIMMED"
    OVERFLOW = "OVERFLOW"
    ACCESS_DENIED = "ACCESS_DENIED"
    TXN_NOT_ACTIVE = "TXN_NOT_ACTIVE"
    TXN_ALREADY_ACTIVE = "TXN_ALREADY_ACTIVE"
    TXN_CONFLICT = "TXN_CONFLICT"
    IO_ERROR = "IO_ERROR"
    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    NOT_IMPLEMENTED = "NOT_IMPLEMENTED"


class StrataError(Exception):
    """Failure reported by the database engine.

    Attributes:
        code: Stable error code.
        message: Human-readable description.
    """

    def __init__(self, code: ErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"StrataError({self.code.value}, {self.message!r})"


def branch_not_found(branch: str) -> StrataError:
    return StrataError(ErrorCode.BRANCH_NOT_FOUND, f"branch not found: {branch}")


def collection_not_found(collection: str) -> StrataError:
    return StrataError(ErrorCode.COLLECTION_NOT_FOUND, f"collection not found: {collection}")


def invalid_input(message: str) -> StrataError:
    return StrataError(ErrorCode.INVALID_INPUT, message)
