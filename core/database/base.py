"""
Declarative base, column annotations and mixins shared by local-store models.
"""

import uuid
from datetime import datetime, timezone
from typing import Annotated, Optional

from sqlalchemy import DateTime, Integer, Uuid, func
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


RowID = Annotated[
    int,
    mapped_column(Integer, primary_key=True, autoincrement=True),
]

StableUUID = Annotated[
    Optional[uuid.UUID],
    mapped_column(
        Uuid(as_uuid=True),
        unique=True,
        nullable=True,
        index=True,
    ),
]

CreatedAt = Annotated[
    datetime,
    mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    ),
]

UpdatedAt = Annotated[
    datetime,
    mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
    ),
]


class Base(AsyncAttrs, DeclarativeBase):
    """Relationships are loaded from async code through ``awaitable_attrs``."""


class TimestampMixin:
    """created_at / updated_at, both timezone-aware UTC."""

    created_at: Mapped[CreatedAt]
    updated_at: Mapped[UpdatedAt]


class LocalIdentityMixin:
    """
    Mixin for records that live in the local store with an integer row id.

    ``storage_uri`` is the local storage identifier of the row. It is only
    meaningful on this device and contains path separators.
    """

    # Row ids are never reused after a delete
    __table_args__ = {"sqlite_autoincrement": True}

    row_id: Mapped[RowID]

    @property
    def storage_uri(self) -> str:
        return f"local://{self.__tablename__}/{self.row_id}"
