"""User model - the ownership scope for bookmarks and tags."""
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark
    from models.tag import Tag


class User(Base, UUIDv7Mixin, TimestampMixin):
    """User model - identified by email for session auth, by id for channel defaults."""

    __tablename__ = "users"

    # id provided by UUIDv7Mixin
    email: Mapped[str | None] = mapped_column(
        String(255), unique=True, index=True, nullable=True,
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    tags: Mapped[list["Tag"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
