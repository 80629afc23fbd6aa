"""
Employee Model.

Local working copy of a directory employee, mirrored to the ``employees``
remote collection.
"""

from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database.base import Base, LocalIdentityMixin, StableUUID, TimestampMixin

if TYPE_CHECKING:
    from modules.directory.models.project import Project


class Employee(Base, LocalIdentityMixin, TimestampMixin):
    """
    Directory employee.

    Attributes:
        row_id: Local storage identifier (autoincrement).
        uuid: Stable identifier; unset on legacy or not-yet-synced records.
            Once minted it never changes.
        name: Display name (remote ``nome``).
        role: Function/role (remote ``funcao``, legacy alias ``cargo``).
        extension: Phone extension (remote ``ramal``).
        mobile: Mobile number (remote ``celular``).
        email: E-mail address.
        region: Free-text region label (remote ``regional``).
        favorite: Favorite flag (remote ``favorito``).
        photo: Optional JPEG bytes.
        photo_url: Durable remote download URL of the photo (remote ``imageURL``).
        projects: Owned projects; deleted together with the employee.
    """

    __tablename__ = "directory_employee"

    uuid: Mapped[StableUUID]
    name: Mapped[str] = mapped_column(String(255), default="", index=True)
    role: Mapped[str] = mapped_column(String(255), default="")
    extension: Mapped[str] = mapped_column(String(64), default="")
    mobile: Mapped[str] = mapped_column(String(64), default="")
    email: Mapped[str] = mapped_column(String(255), default="")
    region: Mapped[str] = mapped_column(String(255), default="", index=True)
    favorite: Mapped[bool] = mapped_column(Boolean, default=False)
    photo: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    projects: Mapped[List["Project"]] = relationship(
        back_populates="employee",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Employee(row_id={self.row_id}, uuid={self.uuid}, name={self.name!r})>"
