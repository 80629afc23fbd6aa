"""
Local Store Adapter.

CRUD facade over the local relational store. One LocalStore owns one
AsyncSession and funnels every use of it through a single asyncio.Lock, so
concurrent sync tasks never touch the session at the same time.

Sync operations that change local data run inside ``transaction()``. At most
one transaction is open at a time; it commits once on exit and rolls back on
error, so no other operation can commit or discard a transaction's changes
half-way. ``exclusive()`` takes the same turn without committing, for reads
that must not observe a transaction in progress.

Usage:
    store = LocalStore(get_session_factory()())
    employees = await store.fetch(Employee)

    async def rename(session: AsyncSession) -> None:
        employee = await session.get(Employee, row_id)
        employee.name = "New name"
        await session.flush()

    async with store.transaction():
        await store.perform(rename)

``perform`` is not reentrant: work passed to it must use the session it
receives and never call back into the store. Neither are ``transaction`` and
``exclusive``: nested use from the same task deadlocks.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional, Type, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.database.base import Base
from modules.directory.services.errors import LocalCommitError

logger = logging.getLogger(__name__)


ModelT = TypeVar("ModelT", bound=Base)
T = TypeVar("T")


class LocalTransaction:
    """Handle yielded by ``LocalStore.transaction()``."""

    def __init__(self) -> None:
        self.rollback_only = False

    def abort(self) -> None:
        """Roll back instead of committing when the block exits."""
        self.rollback_only = True


class LocalStore:
    """
    Serial-access CRUD facade over one AsyncSession.

    Args:
        session: The session this store owns. Closed by ``close()``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._lock = asyncio.Lock()
        self._turn = asyncio.Lock()

    async def perform(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run ``work`` with exclusive access to the session."""
        async with self._lock:
            return await work(self._session)

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator["LocalStore"]:
        """Wait for any open transaction to finish and keep others out until exit."""
        async with self._turn:
            yield self

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[LocalTransaction]:
        """
        One unit of local changes, committed once when the block exits.

        An exception inside the block, or ``abort()`` on the handle, rolls
        the whole unit back instead.

        Raises:
            LocalCommitError: The commit failed; the unit was rolled back.
        """
        async with self._turn:
            handle = LocalTransaction()
            try:
                yield handle
            except BaseException:
                await self.rollback()
                raise
            if handle.rollback_only:
                await self.rollback()
            else:
                await self.save()

    # =========================================================================
    # Queries
    # =========================================================================

    async def fetch(self, model: Type[ModelT], *criteria: Any) -> List[ModelT]:
        """Fetch every record of ``model`` matching ``criteria``, ordered by row id."""
        async def work(session: AsyncSession) -> List[ModelT]:
            stmt = select(model).where(*criteria).order_by(model.row_id)
            result = await session.execute(stmt)
            return list(result.scalars().all())

        return await self.perform(work)

    async def fetch_first(self, model: Type[ModelT], *criteria: Any) -> Optional[ModelT]:
        async def work(session: AsyncSession) -> Optional[ModelT]:
            stmt = select(model).where(*criteria).order_by(model.row_id).limit(1)
            result = await session.execute(stmt)
            return result.scalars().first()

        return await self.perform(work)

    async def get(self, model: Type[ModelT], row_id: int) -> Optional[ModelT]:
        """Get one record by its local row id."""
        async def work(session: AsyncSession) -> Optional[ModelT]:
            return await session.get(model, row_id)

        return await self.perform(work)

    # =========================================================================
    # Mutations (visible to later queries, durable after save())
    # =========================================================================

    async def insert(self, record: ModelT) -> ModelT:
        """Add a record and flush so it gets its row id."""
        async def work(session: AsyncSession) -> ModelT:
            session.add(record)
            await session.flush()
            return record

        return await self.perform(work)

    async def delete(self, record: Base) -> None:
        async def work(session: AsyncSession) -> None:
            await session.delete(record)
            await session.flush()

        await self.perform(work)

    async def batch_delete(self, model: Type[Base]) -> int:
        """
        Delete every record of ``model`` in one statement.

        Owned rows (an employee's projects) go through ON DELETE CASCADE.

        Returns:
            Number of rows deleted.
        """
        async def work(session: AsyncSession) -> int:
            stmt = delete(model).execution_options(synchronize_session="fetch")
            result = await session.execute(stmt)
            return result.rowcount or 0

        deleted = await self.perform(work)
        logger.info(f"Batch-deleted {deleted} {model.__name__} record(s)")
        return deleted

    async def save(self) -> None:
        """
        Commit the pending transaction.

        Raises:
            LocalCommitError: The commit failed; the transaction was rolled back.
        """
        async def work(session: AsyncSession) -> None:
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise LocalCommitError(f"Local commit failed: {e}") from e

        await self.perform(work)

    async def rollback(self) -> None:
        """Discard every pending change."""
        async def work(session: AsyncSession) -> None:
            await session.rollback()

        await self.perform(work)

    async def close(self) -> None:
        async def work(session: AsyncSession) -> None:
            await session.close()

        await self.perform(work)
