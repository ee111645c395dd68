"""Explicit transaction boundary for multi-row ledger writes."""
import enum
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.dml import Update

logger = logging.getLogger(__name__)


class UpdateOutcome(str, enum.Enum):
    """Result of a guarded UPDATE."""

    APPLIED = "applied"
    NO_OP_DUE_TO_RACE = "no_op_due_to_race"


class UnitOfWork:
    """Wraps an ``AsyncSession`` with begin/commit/rollback.

    Used as an async context manager: the transaction is rolled back if the
    block raises and committed otherwise, unless the block already committed
    or rolled back itself.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self._open = False

    async def begin(self) -> None:
        # The session may have autobegun on an earlier read; adopt that transaction
        if not self.session.in_transaction():
            await self.session.begin()
        self._open = True

    async def commit(self) -> None:
        await self.session.commit()
        self._open = False

    async def rollback(self) -> None:
        await self.session.rollback()
        self._open = False

    async def conditional_update(self, statement: Update) -> UpdateOutcome:
        """Execute a guarded UPDATE and report whether any row matched.

        The guard lives in the statement's WHERE clause, so a concurrent
        writer that got there first leaves this one with zero affected rows.
        """
        result = await self.session.execute(
            statement.execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return UpdateOutcome.NO_OP_DUE_TO_RACE
        return UpdateOutcome.APPLIED

    async def __aenter__(self) -> "UnitOfWork":
        await self.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._open:
            return
        if exc_type is not None:
            logger.debug(f"Rolling back unit of work after {exc_type.__name__}")
            await self.rollback()
        else:
            await self.commit()
