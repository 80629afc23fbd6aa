"""
RegionalInfo Model.

Regional office contact card. It has no strong identifier: identity is the
composite of normalized name and normalized extension. A pulled record also
remembers the remote document it came from, so pushes and deletes address
that document.
"""

from typing import Optional, Tuple

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.database.base import Base, LocalIdentityMixin, TimestampMixin


def normalize_key_part(value: str | None) -> str:
    """Trim and casefold one component of the composite key."""
    return (value or "").strip().casefold()


def regional_key(name: str | None, extension: str | None) -> Tuple[str, str]:
    return (normalize_key_part(name), normalize_key_part(extension))


class RegionalInfo(Base, LocalIdentityMixin, TimestampMixin):
    """Regional office: name, address, chief and extension."""

    __tablename__ = "directory_regional_info"

    name: Mapped[str] = mapped_column(String(255), default="")
    address: Mapped[str] = mapped_column(Text, default="")
    chief: Mapped[str] = mapped_column(String(255), default="")
    extension: Mapped[str] = mapped_column(String(64), default="")
    # Document ID this record was pulled from; None until the first pull
    remote_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)

    @property
    def composite_key(self) -> Tuple[str, str]:
        return regional_key(self.name, self.extension)

    def __repr__(self) -> str:
        return f"<RegionalInfo(name={self.name!r}, extension={self.extension!r})>"
