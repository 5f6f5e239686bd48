"""Pydantic schemas for project API requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from showcase_host.api.schemas.common import PaginationMeta


class ProjectSummary(BaseModel):
    """Public-facing project representation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    project_key: str
    title: str
    description: str
    category: str
    user_id: int | None
    username: str
    entry_path: str
    project_url: str
    preview_url: str
    thumbnail_url: str | None
    file_count: int
    views: int
    likes: int
    featured: bool
    trending: bool
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime


class ProjectListResponse(BaseModel):
    """Paginated project listing with per-category totals."""

    items: list[ProjectSummary]
    pagination: PaginationMeta
    category_counts: dict[str, int]


class ProjectUpdateRequest(BaseModel):
    """Fields allowed to be updated for a project."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    category: str | None = Field(default=None, min_length=1, max_length=64)


class ViewResponse(BaseModel):
    counted: bool
    views: int


class LikeResponse(BaseModel):
    liked: bool
    likes: int


class DailyCount(BaseModel):
    date: str
    count: int


class ProjectAnalytics(BaseModel):
    """View and like statistics shown to a project's owner."""

    project_id: int
    views: int
    likes: int
    unique_viewers: int
    views_by_day: list[DailyCount]
    likes_by_day: list[DailyCount]


class UserProjectsResponse(BaseModel):
    projects: list[ProjectSummary]
    total_count: int
