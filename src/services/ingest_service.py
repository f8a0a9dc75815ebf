"""
Ingestion front door: turn a URL plus optional context into a bookmark.

Every channel (the web assistant endpoint, shared-key integrations, Telegram
and WhatsApp webhooks) goes through create_from_url, so the pipeline of
extract, enrich and create is identical everywhere. Channels differ only in
how they format the result.
"""
import logging
import re
from dataclasses import dataclass, field
from uuid import UUID

from pydantic import HttpUrl, TypeAdapter
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from models.bookmark import Bookmark
from schemas.bookmark import BookmarkCreate
from services.bookmark_service import create_bookmark
from services.enrichment import Enrichment, IngestSource, enrich
from services.url_scraper import PageMetadata, extract_metadata

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
TRAILING_PUNCTUATION = re.compile(r"[.,;!?]+$")

_http_url = TypeAdapter(HttpUrl)


def extract_urls(text: str) -> list[str]:
    """Find http(s) URLs in free text, in order, without trailing punctuation."""
    urls = []
    for match in URL_PATTERN.findall(text or ""):
        url = TRAILING_PUNCTUATION.sub("", match)
        if url:
            urls.append(url)
    return urls


def strip_urls(text: str) -> str:
    """Remove every URL from the text, leaving the user's note."""
    return URL_PATTERN.sub("", text or "").strip()


@dataclass
class IngestResult:
    """A bookmark created by the front door, with what went into it."""

    bookmark: Bookmark
    tag_names: list[str]
    metadata: PageMetadata
    enrichment: Enrichment

    @property
    def summary(self) -> str:
        """Human-readable confirmation for chat and assistant replies."""
        return (
            f'✅ Bookmark created: "{self.bookmark.title}"\n'
            f"🏷️ Tags: {', '.join(self.tag_names)}\n"
            "📝 Added to your todo list for review"
        )


async def create_from_url(
    db: AsyncSession,
    user_id: UUID,
    url: str,
    user_message: str | None = None,
    source: IngestSource = IngestSource.MANUAL,
) -> IngestResult:
    """
    Create a bookmark from a URL and optional user note.

    Steps: extract page metadata (never fails, degrades to domain-derived
    values), enrich it (never fails, degrades to a minimal default), then
    create the bookmark as TODO with the enriched title, description,
    priority and tags. The favicon is the page's og:image, if any.

    Raises:
        ValueError: If the URL is not a valid absolute http(s) URL.
    """
    settings = get_settings()
    normalized_url = str(_http_url.validate_python(url))
    message = user_message.strip() if user_message and user_message.strip() else None

    metadata = await extract_metadata(normalized_url, timeout=settings.metadata_fetch_timeout)
    enrichment = enrich(metadata, message, source)
    if enrichment.degraded:
        logger.warning("Using fallback enrichment for %s: %s", normalized_url, enrichment.error)

    tag_names = [tag for tag in enrichment.tags if len(tag) <= settings.max_tag_length]
    bookmark = await create_bookmark(
        db,
        user_id,
        BookmarkCreate(
            url=normalized_url,
            title=enrichment.title[:settings.max_title_length],
            description=enrichment.description,
            priority=enrichment.priority,
            tags=tag_names,
            favicon_url=metadata.image or None,
        ),
        derive_favicon=False,
    )
    logger.info(
        "Created bookmark %s from %s via %s (priority=%s, tags=%s)",
        bookmark.id, normalized_url, source, bookmark.priority, tag_names,
    )
    return IngestResult(
        bookmark=bookmark,
        tag_names=tag_names,
        metadata=metadata,
        enrichment=enrichment,
    )


@dataclass
class MessageItemResult:
    """Outcome for one URL found in a chat message."""

    url: str
    success: bool
    result: IngestResult | None = None
    error: str | None = None


@dataclass
class MessageResult:
    """Outcome of processing one chat message."""

    has_urls: bool
    user_message: str | None = None
    items: list[MessageItemResult] = field(default_factory=list)

    @property
    def successful(self) -> list[MessageItemResult]:
        return [item for item in self.items if item.success]

    @property
    def failed(self) -> list[MessageItemResult]:
        return [item for item in self.items if not item.success]


async def process_message(
    db: AsyncSession,
    user_id: UUID,
    text: str,
    source: IngestSource,
) -> MessageResult:
    """
    Create one bookmark per URL found in a chat message.

    The text with all URLs removed is the shared note for every URL. URLs are
    processed sequentially in the order found, each inside its own savepoint,
    so a failure is recorded for that URL and the rest still run.
    """
    urls = extract_urls(text)
    if not urls:
        return MessageResult(has_urls=False)

    user_message = strip_urls(text) or None
    outcome = MessageResult(has_urls=True, user_message=user_message)
    for url in urls:
        try:
            async with db.begin_nested():
                result = await create_from_url(db, user_id, url, user_message, source)
        except Exception as e:
            logger.exception("Failed to create bookmark from %s via %s", url, source)
            outcome.items.append(MessageItemResult(url=url, success=False, error=str(e)))
            continue
        outcome.items.append(MessageItemResult(url=url, success=True, result=result))

    logger.info(
        "Processed %s message: %d url(s), %d created, %d failed",
        source, len(urls), len(outcome.successful), len(outcome.failed),
    )
    return outcome
