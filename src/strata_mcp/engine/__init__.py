"""Database engine layer: command/output contract plus the in-memory engine.

The protocol layer only talks to the engine through ``Command`` objects,
``Output`` variants and ``StrataError``. It must never reach into
``engine.store`` or ``engine.memory`` internals.
"""

from strata_mcp.engine.errors import ErrorCode, StrataError
from strata_mcp.engine.memory import BranchOps, Strata, StrataSession
from strata_mcp.engine.types import DEFAULT_BRANCH, DEFAULT_SPACE, AccessMode

__all__ = [
    "DEFAULT_BRANCH",
    "DEFAULT_SPACE",
    "AccessMode",
    "BranchOps",
    "ErrorCode",
    "Strata",
    "StrataError",
    "StrataSession",
]
