"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    field_validator,
    model_validator,
)

from models.bookmark import BookmarkStatus, Priority
from schemas.validators import (
    validate_and_normalize_tag,
    validate_and_normalize_tags,
    validate_title_length,
)


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark explicitly (title required)."""

    # HttpUrl normalizes root domains with trailing slash (example.com -> example.com/)
    # but preserves paths as-is (example.com/page stays example.com/page)
    url: HttpUrl
    title: str = Field(min_length=1)
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    tags: list[str] = []
    favicon_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("favicon_url", "faviconUrl"),
    )

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str) -> str:
        """Validate title length."""
        return validate_title_length(v)


class BookmarkUpdate(BaseModel):
    """
    Schema for a partial bookmark update.

    Omitted fields are left unchanged. A provided `tags` list replaces the
    full set of tag associations.
    """

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    priority: Priority | None = None
    status: BookmarkStatus | None = None
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)


class BookmarkResponse(BaseModel):
    """
    Schema for bookmark responses.

    Note: Uses model_validator to extract tag names from the tag_objects
    relationship when eagerly loaded.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    url: str
    title: str
    description: str | None
    favicon_url: str | None
    priority: Priority
    status: BookmarkStatus
    tags: list[str]
    created_at: datetime
    updated_at: datetime
    reviewed_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def extract_tag_names(cls, data: Any) -> Any:
        """
        Extract tag names from tag_objects relationship.

        Only accesses tag_objects if it's already loaded (not lazy) to avoid
        triggering database queries outside async context.
        """
        if hasattr(data, "__dict__"):
            data_dict = {}
            for key in [
                "id", "url", "title", "description", "favicon_url", "priority",
                "status", "created_at", "updated_at", "reviewed_at",
            ]:
                if hasattr(data, key):
                    data_dict[key] = getattr(data, key)

            # SQLAlchemy sets __dict__ entry when relationship is loaded
            if "tag_objects" in data.__dict__ and data.__dict__["tag_objects"] is not None:
                data_dict["tags"] = [tag.name for tag in data.__dict__["tag_objects"]]
            else:
                data_dict["tags"] = []

            return data_dict
        return data


class BookmarkListResponse(BaseModel):
    """Schema for paginated bookmark list responses."""

    items: list[BookmarkResponse]
    total: int  # Total count of bookmarks matching the query (before pagination)
    offset: int
    limit: int
    has_more: bool


class BulkAction(StrEnum):
    """Actions supported by the bulk endpoint."""

    ARCHIVE = "archive"
    DISCARD = "discard"
    MARK_REVIEWED = "mark_reviewed"
    DELETE = "delete"
    ADD_TAG = "add_tag"
    REMOVE_TAG = "remove_tag"
    SET_PRIORITY = "set_priority"


class BulkOperationRequest(BaseModel):
    """
    Schema for a bulk operation over a set of the caller's bookmarks.

    `value` carries the tag name for add_tag/remove_tag and the priority for
    set_priority (case-insensitive). It is normalized during validation so
    the service receives a lowercased tag name or an uppercase priority.
    """

    bookmark_ids: list[UUID] = Field(
        min_length=1,
        validation_alias=AliasChoices("bookmark_ids", "bookmarkIds"),
    )
    action: BulkAction
    value: str | None = None

    @model_validator(mode="after")
    def check_value_for_action(self) -> "BulkOperationRequest":
        """Require and normalize `value` for the actions that use it."""
        if self.action in (BulkAction.ADD_TAG, BulkAction.REMOVE_TAG):
            if not self.value or not self.value.strip():
                raise ValueError("Tag name is required")
            self.value = validate_and_normalize_tag(self.value)
        elif self.action == BulkAction.SET_PRIORITY:
            candidate = (self.value or "").strip().upper()
            if candidate not in Priority.__members__:
                raise ValueError("Valid priority value required (HIGH, MEDIUM, LOW)")
            self.value = candidate
        return self


class BulkOperationResponse(BaseModel):
    """Schema for the bulk operation result."""

    success: bool = True
    affected: int
    action: BulkAction


class BookmarkImportItem(BaseModel):
    """One bookmark in an import request (already parsed from HTML/JSON/CSV)."""

    url: HttpUrl
    title: str = Field(min_length=1)
    description: str | None = None
    tags: list[str] = []
    folder: str | None = None

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str) -> str:
        """Validate title length."""
        return validate_title_length(v)


class BookmarkImportRequest(BaseModel):
    """Schema for a bulk import request."""

    bookmarks: list[BookmarkImportItem] = Field(min_length=1, max_length=1000)


class ImportItemResult(BaseModel):
    """Outcome of importing a single bookmark."""

    url: str
    status: str  # "imported" | "skipped" | "error"
    reason: str | None = None


class BookmarkImportResponse(BaseModel):
    """Schema for the bulk import result."""

    success: bool = True
    imported: int
    skipped: int
    errors: list[str]
    details: list[ImportItemResult]
    summary: str
