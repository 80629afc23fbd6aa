"""
Municipality Model.

Mirrored to the ``municipios`` remote collection.
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from core.database.base import Base, LocalIdentityMixin, StableUUID, TimestampMixin


class Municipality(Base, LocalIdentityMixin, TimestampMixin):
    """
    Municipality served by a regional office.

    Same identity rules as Employee, without attachments or sub-records.
    """

    __tablename__ = "directory_municipality"

    uuid: Mapped[StableUUID]
    name: Mapped[str] = mapped_column(String(255), default="", index=True)
    region: Mapped[str] = mapped_column(String(255), default="", index=True)
    favorite: Mapped[bool] = mapped_column(Boolean, default=False)

    def __repr__(self) -> str:
        return f"<Municipality(row_id={self.row_id}, name={self.name!r})>"
