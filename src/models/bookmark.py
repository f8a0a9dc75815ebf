"""Bookmark model for storing user bookmarks and their review state."""
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.tag import bookmark_tags

if TYPE_CHECKING:
    from models.tag import Tag
    from models.user import User


class Priority(StrEnum):
    """Review priority assigned by the user or by enrichment."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class BookmarkStatus(StrEnum):
    """
    Position of a bookmark in the review workflow.

    TODO is the only initial state. Every transition is allowed; entering one
    of the terminal states stamps reviewed_at.
    """

    TODO = "TODO"
    REVIEWED = "REVIEWED"
    ARCHIVED = "ARCHIVED"
    DISCARDED = "DISCARDED"


TERMINAL_STATUSES = frozenset(
    {BookmarkStatus.REVIEWED, BookmarkStatus.ARCHIVED, BookmarkStatus.DISCARDED},
)


class Bookmark(Base, UUIDv7Mixin, TimestampMixin):
    """Bookmark model - stores URLs with metadata, review status and tags."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        Index("ix_bookmarks_user_id_status", "user_id", "status"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    favicon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=Priority.MEDIUM.value,
    )
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=BookmarkStatus.TODO.value,
    )
    # Null until the bookmark first leaves TODO
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None,
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
    tag_objects: Mapped[list["Tag"]] = relationship(
        secondary=bookmark_tags,
        back_populates="bookmarks",
        order_by="Tag.name",
    )

    @property
    def tag_names(self) -> list[str]:
        """Names of attached tags (relationship must already be loaded)."""
        return [tag.name for tag in self.tag_objects]
