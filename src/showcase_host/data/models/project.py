"""ORM model representing a hosted project."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from showcase_host.data.db import Base

if TYPE_CHECKING:
    from showcase_host.data.models.project_like import ProjectLike
    from showcase_host.data.models.project_view import ProjectView
    from showcase_host.data.models.user import User


class Project(Base):
    """A validated, published static site.

    Rows are only written once ingestion confirmed an entry point, so
    ``project_url`` and ``preview_url`` are always set.

    Attributes:
        id: Auto-incrementing primary key.
        project_key: Opaque identifier naming the published directory.
        user_id: Owning user, or None for anonymous uploads.
        entry_path: Entry HTML file relative to the project directory.
        views: Unique visitor view count.
        likes: Number of like rows currently held for the project.
    """

    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_key: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entry_path: Mapped[str] = mapped_column(String, nullable=False)
    project_url: Mapped[str] = mapped_column(String, nullable=False)
    preview_url: Mapped[str] = mapped_column(String, nullable=False)
    thumbnail_url: Mapped[str | None] = mapped_column(String, nullable=True)
    archive_filename: Mapped[str] = mapped_column(String, nullable=False)
    file_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    trending: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    user: Mapped[User | None] = relationship("User", back_populates="projects")
    view_records: Mapped[list[ProjectView]] = relationship(
        "ProjectView", back_populates="project", cascade="all, delete-orphan"
    )
    like_records: Mapped[list[ProjectLike]] = relationship(
        "ProjectLike", back_populates="project", cascade="all, delete-orphan"
    )
