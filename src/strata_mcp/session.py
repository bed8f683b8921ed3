"""Per-connection session: current branch / space and transaction tracking."""

from __future__ import annotations

import logging

from strata_mcp.engine import commands as cmd
from strata_mcp.engine import outputs as out
from strata_mcp.engine.errors import StrataError
from strata_mcp.engine.memory import Strata
from strata_mcp.engine.types import (
    DEFAULT_BRANCH,
    DEFAULT_SPACE,
    BranchDiffResult,
    ForkInfo,
    MergeInfo,
    MergeStrategy,
)
from strata_mcp.errors import BranchNotFoundError, DatabaseError, InternalError

logger = logging.getLogger(__name__)


class McpSession:
    """Holds the addressing context shared by every tool call.

    The transaction flag follows the outputs the engine returns, never the
    commands sent: ``TxnBegun`` sets it, ``TxnCommitted`` / ``TxnAborted``
    clear it.
    """

    def __init__(self, db: Strata) -> None:
        self._db = db
        self._session = db.session()
        self._branch = DEFAULT_BRANCH
        self._space = DEFAULT_SPACE
        self._in_transaction = False

    @property
    def db(self) -> Strata:
        return self._db

    @property
    def branch(self) -> str:
        return self._branch

    @property
    def space(self) -> str:
        return self._space

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    def branch_id(self) -> str:
        """Branch parameter for data commands."""
        return self._branch

    def space_id(self) -> str:
        """Space parameter for data commands."""
        return self._space

    def execute(self, command: cmd.Command) -> out.Output:
        """Run *command* on the engine and track transaction transitions."""
        try:
            output = self._session.execute(command)
        except StrataError as exc:
            raise DatabaseError(exc.code.value, exc.message) from exc
        if isinstance(output, out.TxnBegun):
            self._in_transaction = True
        elif isinstance(output, out.TxnCommitted | out.TxnAborted):
            self._in_transaction = False
        return output

    def switch_branch(self, name: str) -> None:
        """Make *name* the current branch; it must exist."""
        output = self.execute(cmd.BranchExists(branch=name))
        if not isinstance(output, out.Bool):
            raise InternalError(f"unexpected output for branch exists: {type(output).__name__}")
        if not output.value:
            raise BranchNotFoundError(name)
        logger.debug("Switched branch %s -> %s", self._branch, name)
        self._branch = name

    def switch_space(self, name: str) -> None:
        """Make *name* the current space. Spaces are not checked for existence."""
        logger.debug("Switched space %s -> %s", self._space, name)
        self._space = name

    def fork_branch(self, destination: str) -> ForkInfo:
        """Fork the current branch into *destination*."""
        try:
            return self._db.branches().fork(self._branch, destination)
        except StrataError as exc:
            raise DatabaseError(exc.code.value, exc.message) from exc

    def diff_branches(self, branch_a: str, branch_b: str) -> BranchDiffResult:
        try:
            return self._db.branches().diff(branch_a, branch_b)
        except StrataError as exc:
            raise DatabaseError(exc.code.value, exc.message) from exc

    def merge_branch(self, source: str, strategy: MergeStrategy) -> MergeInfo:
        """Merge *source* into the current branch."""
        try:
            return self._db.branches().merge(source, self._branch, strategy)
        except StrataError as exc:
            raise DatabaseError(exc.code.value, exc.message) from exc
