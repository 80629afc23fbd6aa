"""
Database Engine Management Module.

Provides a singleton AsyncEngine for the entire application.
Uses configuration from core.app_context.ConfigLoader.

The local store is SQLite through aiosqlite. Foreign keys are enabled on
every connection so that ``ON DELETE CASCADE`` relations behave the same
for ORM deletes and for bulk deletes.
"""

import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from core.app_context import ConfigLoader

_logger = logging.getLogger(__name__)

# Global engine instance (singleton)
_engine: AsyncEngine | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    In-memory SQLite URLs share a single connection (StaticPool) so every
    session sees the same database.

    Args:
        database_url: SQLAlchemy async URL (e.g. sqlite+aiosqlite:///./directory.db).
        echo: Enable SQLAlchemy echo mode for debugging.

    Returns:
        AsyncEngine: SQLAlchemy async engine instance.
    """
    kwargs: dict = {"echo": echo}
    is_sqlite = database_url.startswith("sqlite")

    if is_sqlite and ":memory:" in database_url:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}
    elif not is_sqlite:
        kwargs["pool_pre_ping"] = True

    engine = create_async_engine(database_url, **kwargs)

    if is_sqlite:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    _logger.debug(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


def get_engine() -> AsyncEngine:
    """Process-wide engine for DATABASE_URL, created on first use."""
    global _engine

    if _engine is None:
        config_loader = ConfigLoader()
        config_loader.load()
        _engine = create_engine_for_url(
            config_loader.database_url,
            echo=config_loader.get("database.echo", False),
        )

    return _engine


async def close_engine() -> None:
    """Dispose of the process-wide engine; the next get_engine() builds a new one."""
    global _engine

    if _engine is not None:
        await _engine.dispose()
        _engine = None
