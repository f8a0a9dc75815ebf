"""Pydantic schemas for the dashboard statistics endpoint."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from models.bookmark import BookmarkStatus


class StatsOverview(BaseModel):
    """Headline counts across the user's bookmarks."""

    total_bookmarks: int
    todo_count: int
    reviewed_count: int
    archived_count: int
    discarded_count: int
    total_tags: int
    processed_count: int
    productivity_rate: int  # processed / total as a rounded percentage


class StatsBreakdown(BaseModel):
    """Bookmark counts per status, and per priority among TODO items."""

    status: dict[str, int]
    priority: dict[str, int]


class RecentBookmark(BaseModel):
    """Compact bookmark summary for the recent list."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    url: str
    status: BookmarkStatus
    favicon_url: str | None
    created_at: datetime


class TopTag(BaseModel):
    """Tag with its usage count."""

    id: UUID
    name: str
    color: str
    count: int


class StatsResponse(BaseModel):
    """Schema for GET /stats."""

    overview: StatsOverview
    breakdown: StatsBreakdown
    recent_bookmarks: list[RecentBookmark]
    top_tags: list[TopTag]
