"""
Core Database Package.

Provides centralized database management for the framework.
Modules should use these components instead of creating their own connections.
"""

from core.database.base import Base, TimestampMixin, LocalIdentityMixin, RowID, StableUUID, CreatedAt, UpdatedAt
from core.database.engine import get_engine, create_engine_for_url, close_engine
from core.database.session import (
    create_session_factory,
    get_session_factory,
    get_standalone_session,
    close_db_connections,
    init_database,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "LocalIdentityMixin",
    "RowID",
    "StableUUID",
    "CreatedAt",
    "UpdatedAt",
    # Engine
    "get_engine",
    "create_engine_for_url",
    "close_engine",
    # Session
    "create_session_factory",
    "get_session_factory",
    "get_standalone_session",
    "close_db_connections",
    "init_database",
]
