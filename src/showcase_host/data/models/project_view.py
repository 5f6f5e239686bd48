"""ORM model recording a visitor's view of a project."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from showcase_host.data.db import Base

if TYPE_CHECKING:
    from showcase_host.data.models.project import Project


class ProjectView(Base):
    """One row per (project, visitor); views are counted once per visitor."""

    __tablename__ = "project_views"
    __table_args__ = (
        UniqueConstraint("project_id", "visitor_id", name="uq_project_views_visitor"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    visitor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    project: Mapped[Project] = relationship("Project", back_populates="view_records")
