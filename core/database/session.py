"""
Database Session Management Module.

Provides async database session management using SQLAlchemy 2.0+ async patterns.
Follows Dependency Inversion Principle - high-level modules depend on abstractions.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.database.engine import close_engine, get_engine


# Global session factory (initialized lazily)
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Build a session factory bound to the given engine.

    Sessions do not expire objects on commit, so records loaded by the sync
    engine stay readable after the batch commit.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the async session factory.

    Returns:
        async_sessionmaker[AsyncSession]: Session factory for creating database sessions.
    """
    global _async_session_factory

    if _async_session_factory is None:
        _async_session_factory = create_session_factory(get_engine())

    return _async_session_factory


@asynccontextmanager
async def get_standalone_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for standalone database sessions.

    Useful for background tasks, CLI commands, or testing.

    Yields:
        AsyncSession: Database session with automatic cleanup.

    Example:
        async with get_standalone_session() as session:
            employee = await session.get(Employee, row_id)
    """
    session_factory = get_session_factory()

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_database(engine: AsyncEngine | None = None) -> None:
    """
    Initialize database schema.

    Creates all tables defined in models if they don't exist.
    Should be called during application startup.
    """
    from core.database.base import Base
    import core.state_store  # noqa: F401 - Import to register models with Base.metadata
    import modules.directory.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db_connections() -> None:
    """
    Close all database connections.

    Should be called during application shutdown.
    """
    global _async_session_factory

    await close_engine()
    _async_session_factory = None
