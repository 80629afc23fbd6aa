"""
Project Model.

Projects belong to exactly one Employee and travel inside the employee
document as the ``projetos`` array.
"""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database.base import Base, LocalIdentityMixin, TimestampMixin

if TYPE_CHECKING:
    from modules.directory.models.employee import Employee


class ProjectStatus(str, Enum):
    """Known project statuses. Unknown values received from remote are kept verbatim."""

    IN_PROGRESS = "Em andamento"
    DONE = "Finalizado"
    TO_DO = "A fazer"


class Project(Base, LocalIdentityMixin, TimestampMixin):
    """Project owned by an employee."""

    __tablename__ = "directory_project"

    employee_row_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("directory_employee.row_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), default="")
    status: Mapped[str] = mapped_column(String(64), default=ProjectStatus.TO_DO.value)
    description: Mapped[str] = mapped_column(Text, default="")

    employee: Mapped["Employee"] = relationship(back_populates="projects")

    @property
    def upsert_key(self) -> str:
        """Key used to match incoming remote projects: ``name|status``."""
        return f"{self.name}|{self.status}"

    def __repr__(self) -> str:
        return f"<Project(name={self.name!r}, status={self.status!r})>"
