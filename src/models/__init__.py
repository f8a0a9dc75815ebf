"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.tag import Tag, bookmark_tags  # Must be before bookmark due to import
from models.bookmark import TERMINAL_STATUSES, Bookmark, BookmarkStatus, Priority
from models.user import User

__all__ = [
    "TERMINAL_STATUSES",
    "Base",
    "Bookmark",
    "BookmarkStatus",
    "Priority",
    "Tag",
    "TimestampMixin",
    "UUIDv7Mixin",
    "User",
    "bookmark_tags",
]
