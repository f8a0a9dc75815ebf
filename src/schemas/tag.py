"""Pydantic schemas for tag endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.validators import validate_and_normalize_tag, validate_color


class TagCreate(BaseModel):
    """Schema for creating a tag. Color is picked from the palette when omitted."""

    name: str = Field(..., min_length=1)
    color: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str) -> str:
        """Normalize and validate the tag name."""
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        """Validate color format."""
        return validate_color(v)


class TagUpdate(BaseModel):
    """Schema for renaming and/or recoloring a tag."""

    name: str | None = None
    color: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str | None) -> str | None:
        """Normalize and validate the new tag name if provided."""
        if v is None:
            return None
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        """Validate color format."""
        return validate_color(v)


class TagResponse(BaseModel):
    """Schema for a single tag."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    created_at: datetime


class TagWithCount(TagResponse):
    """Schema for a tag with the number of bookmarks using it."""

    bookmark_count: int


class TagListResponse(BaseModel):
    """Schema for the tags list response."""

    tags: list[TagWithCount]
