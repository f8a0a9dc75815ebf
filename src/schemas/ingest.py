"""Pydantic schemas for create-from-URL endpoints."""
from datetime import datetime

from pydantic import AliasChoices, BaseModel, EmailStr, Field, HttpUrl

from schemas.bookmark import BookmarkResponse
from services.enrichment import IngestSource


class ExtractBookmarkRequest(BaseModel):
    """Create a bookmark from a URL, letting enrichment fill in the rest."""

    url: HttpUrl
    user_message: str | None = Field(
        default=None,
        validation_alias=AliasChoices("user_message", "userMessage"),
    )
    source: IngestSource = IngestSource.MANUAL


class IntegrationBookmarkRequest(ExtractBookmarkRequest):
    """
    Create-from-URL request sent by a bot or integration with a shared key.

    The owner is the user with `user_email` when given, otherwise the
    default user.
    """

    user_email: EmailStr | None = Field(
        default=None,
        validation_alias=AliasChoices("user_email", "userEmail"),
    )
    source: IngestSource = IngestSource.WHATSAPP


class ExtractedMetadataResponse(BaseModel):
    """Metadata scraped from the page (or the domain fallback)."""

    url: str
    title: str
    description: str
    image: str
    domain: str
    timestamp: datetime
    error: str | None = None


class IngestInsights(BaseModel):
    """How the bookmark's fields were derived."""

    extracted_metadata: ExtractedMetadataResponse
    source: IngestSource
    degraded_extraction: bool
    degraded_enrichment: bool
    domain_analysis: str | None = None
    content_type: str | None = None
    user_context: dict[str, str] | None = None


class ExtractBookmarkResponse(BaseModel):
    """Schema for a bookmark created from a URL."""

    success: bool = True
    bookmark: BookmarkResponse
    tags: list[str]
    summary: str
    insights: IngestInsights


class IntegrationBookmarkResponse(ExtractBookmarkResponse):
    """Adds the reply text a bot should forward to the user."""

    chat_message: str
