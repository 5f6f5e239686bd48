"""Shared Pydantic schemas for API responses."""

from __future__ import annotations

from pydantic import BaseModel, Field

# Default pagination values
DEFAULT_LIMIT = 24
MAX_LIMIT = 100


class PaginationMeta(BaseModel):
    """Pagination metadata for list responses."""

    total: int = Field(description="Total number of items available")
    limit: int = Field(description="Maximum number of items returned")
    offset: int = Field(description="Number of items skipped")
    has_more: bool = Field(description="Whether there are more items available")


class ErrorDetail(BaseModel):
    """Structured detail attached to failed uploads."""

    kind: str = Field(description="Machine-readable error kind")
    message: str = Field(description="Human-readable explanation")
    state: str | None = Field(default=None, description="Pipeline state the upload failed in")
