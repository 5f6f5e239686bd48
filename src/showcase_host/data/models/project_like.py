"""ORM model recording that a visitor likes a project."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from showcase_host.data.db import Base

if TYPE_CHECKING:
    from showcase_host.data.models.project import Project


class ProjectLike(Base):
    """At most one like per (project, visitor), enforced by the database."""

    __tablename__ = "project_likes"
    __table_args__ = (
        UniqueConstraint("project_id", "visitor_id", name="uq_project_likes_visitor"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    visitor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    liked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    project: Mapped[Project] = relationship("Project", back_populates="like_records")
