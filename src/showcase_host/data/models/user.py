"""Minimal user account model.

Identity is established by an external provider; this table only keeps a
stable row per username so projects can reference their owner.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from showcase_host.data.db import Base

if TYPE_CHECKING:
    from showcase_host.data.models.project import Project


class User(Base):
    """Application user account.

    Attributes:
        id: Auto-incrementing primary key.
        username: Unique handle supplied by the identity provider.
        created_at: UTC timestamp when the row was first seen.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    projects: Mapped[list[Project]] = relationship("Project", back_populates="user")
