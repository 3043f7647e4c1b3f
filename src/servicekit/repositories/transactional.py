"""Explicit transaction management over an async session factory."""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.servicekit.exceptions import DatabaseError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionalRepository:
    """Begin, commit and roll back transactions for repository writes.

    Pass the session it hands out to ``BaseRepository`` writes so they join
    the same transaction.

    Example:
        tx_repo = TransactionalRepository(connection.session_factory)

        async def transfer(session):
            await accounts.update(1, session=session, balance=50)
            await accounts.update(2, session=session, balance=150)

        await tx_repo.execute_in_transaction(transfer)
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def begin(self) -> AsyncSession:
        """Open a session with a started transaction."""
        session = self.session_factory()
        try:
            await session.begin()
        except SQLAlchemyError as e:
            await session.close()
            logger.error(f"Failed to begin transaction: {e}")
            raise DatabaseError(f"Failed to begin transaction: {e}", original=e) from e
        return session

    async def commit(self, session: AsyncSession) -> None:
        """Commit and close the session."""
        try:
            await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to commit transaction: {e}")
            await session.rollback()
            raise DatabaseError(f"Failed to commit transaction: {e}", original=e) from e
        finally:
            await session.close()

    async def rollback(self, session: AsyncSession) -> None:
        """Roll back and close the session, leaving changes uncommitted."""
        try:
            await session.rollback()
        finally:
            await session.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """Context manager: commit on clean exit, roll back on error."""
        session = await self.begin()
        try:
            yield session
        except BaseException:
            await self.rollback(session)
            raise
        await self.commit(session)

    async def execute_in_transaction(
        self, fn: Callable[[AsyncSession], Awaitable[T]]
    ) -> T:
        """Run ``fn(session)`` in one transaction.

        Commits when ``fn`` returns; rolls back and re-raises when it fails.
        """
        async with self.transaction() as session:
            try:
                return await fn(session)
            except Exception as e:
                logger.warning(
                    f"Transaction rolled back: {type(e).__name__}: {e}",
                    extra={"exception_type": type(e).__name__},
                )
                raise
