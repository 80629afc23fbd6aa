"""
Persisted Sync State Store.

Small key-value store for "has this run yet" flags (one-time migrations,
first-install seeding). Keys are namespaced strings such as
``directory.migration.employees``.

``check_and_set`` is atomic at the database level (INSERT ... ON CONFLICT DO
NOTHING), so two concurrent callers can never both observe "not yet set".
"""

import logging
from typing import Optional

from sqlalchemy import String, Text, delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Mapped, mapped_column

from core.database.base import Base, UpdatedAt
from core.database.session import get_session_factory

logger = logging.getLogger(__name__)


class SyncStateRecord(Base):
    """One persisted flag."""

    __tablename__ = "sync_state"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default="1")
    updated_at: Mapped[UpdatedAt]

    def __repr__(self) -> str:
        return f"<SyncStateRecord(key={self.key!r}, value={self.value!r})>"


def state_key(namespace: str, name: str) -> str:
    """
    Build a namespaced state key.

    Example:
        state_key("directory.migration", "employees") -> "directory.migration.employees"
    """
    return f"{namespace.strip('.')}.{name.strip('.')}"


class SyncStateStore:
    """
    Async key-value flag store backed by the ``sync_state`` table.

    Args:
        session_factory: Session factory. Defaults to the application factory.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._session_factory = session_factory or get_session_factory()

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is unset."""
        async with self._session_factory() as session:
            result = await session.execute(select(SyncStateRecord.value).where(SyncStateRecord.key == key))
            return result.scalar_one_or_none()

    async def is_set(self, key: str) -> bool:
        return await self.get(key) is not None

    async def set(self, key: str, value: str = "1") -> None:
        """Set (or overwrite) a key."""
        async with self._session_factory() as session:
            state = await session.get(SyncStateRecord, key)
            if state is None:
                session.add(SyncStateRecord(key=key, value=value))
            else:
                state.value = value
            await session.commit()
        logger.debug(f"State '{key}' set")

    async def check_and_set(self, key: str, value: str = "1") -> bool:
        """
        Atomically set a key if it is absent.

        Returns:
            True only for the caller that actually set the key.
        """
        async with self._session_factory() as session:
            dialect = session.get_bind().dialect.name
            insert_fn = pg_insert if dialect == "postgresql" else sqlite_insert

            stmt = (
                insert_fn(SyncStateRecord)
                .values(key=key, value=value)
                .on_conflict_do_nothing(index_elements=["key"])
            )
            result = await session.execute(stmt)
            await session.commit()

        acquired = result.rowcount == 1
        if acquired:
            logger.info(f"State '{key}' acquired")
        return acquired

    async def clear(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if a key was removed.
        """
        async with self._session_factory() as session:
            result = await session.execute(delete(SyncStateRecord).where(SyncStateRecord.key == key))
            await session.commit()
        return result.rowcount > 0
