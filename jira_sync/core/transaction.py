"""Scoped transaction execution over an async SQLAlchemy session factory."""

import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionError(Exception):
    """A unit of work failed to begin, run or commit. The cause is chained."""

    def __init__(self, message: str):
        super().__init__(f"Transaction execution failed: {message}")
        self.message = message


class TransactionExecutor:
    """Runs a unit of work in its own session, committing on success and rolling back on any failure."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def run(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
        description: str = "unit of work",
    ) -> T:
        """
        Execute `operation(session)` inside one transaction.

        Raises:
            TransactionError: if beginning, the operation itself or the
                commit fails; nothing from the unit of work is persisted.
        """
        async with self.session_factory() as session:
            try:
                async with session.begin():
                    return await operation(session)
            except Exception as e:
                logger.error(f"Transaction rolled back ({description}): {e}")
                raise TransactionError(f"{description}: {e}") from e
