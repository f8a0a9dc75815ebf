"""Service layer for bookmark lifecycle operations."""
import logging
from uuid import UUID

from sqlalchemy import case, delete, exists, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.base import utc_now
from models.bookmark import TERMINAL_STATUSES, Bookmark, BookmarkStatus, Priority
from models.tag import Tag, bookmark_tags
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkImportItem,
    BookmarkImportResponse,
    BookmarkUpdate,
    BulkAction,
    BulkOperationRequest,
    ImportItemResult,
)
from schemas.stats import (
    RecentBookmark,
    StatsBreakdown,
    StatsOverview,
    StatsResponse,
    TopTag,
)
from schemas.validators import validate_and_normalize_tag
from services.tag_service import (
    get_or_create_tag,
    get_or_create_tags,
    get_tag_by_name,
    update_bookmark_tags,
)
from services.url_scraper import extract_domain, generate_favicon_url
from services.utils import escape_ilike

logger = logging.getLogger(__name__)

# Status each status-changing bulk action moves bookmarks into
BULK_STATUS_ACTIONS = {
    BulkAction.ARCHIVE: BookmarkStatus.ARCHIVED,
    BulkAction.DISCARD: BookmarkStatus.DISCARDED,
    BulkAction.MARK_REVIEWED: BookmarkStatus.REVIEWED,
}


def apply_status_change(bookmark: Bookmark, new_status: BookmarkStatus) -> None:
    """
    Move a bookmark to a new status.

    Entering a terminal status from a different status stamps reviewed_at.
    No transition is forbidden, and reviewed_at is never cleared, so moving
    back to TODO keeps the previous stamp.
    """
    if new_status in TERMINAL_STATUSES and new_status != bookmark.status:
        bookmark.reviewed_at = utc_now()
    bookmark.status = new_status.value


async def _check_url_exists(
    db: AsyncSession,
    user_id: UUID,
    url: str,
) -> bool:
    """Check if the user already has a bookmark for this exact URL."""
    result = await db.execute(
        select(
            exists().where(Bookmark.user_id == user_id, Bookmark.url == url),
        ),
    )
    return bool(result.scalar())


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
    derive_favicon: bool = True,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Every bookmark starts as TODO with no reviewed_at, whichever channel
    created it. Tags are found or created case-insensitively.

    Args:
        db: Database session.
        user_id: User ID to create the bookmark for.
        data: Bookmark creation data.
        derive_favicon:
            When True and no favicon was supplied, use the favicon service URL
            for the bookmark's domain. The ingestion front door passes False
            and supplies the page's og:image (or nothing) instead.

    Returns:
        The created bookmark with tag_objects loaded.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    url_str = str(data.url)
    favicon_url = data.favicon_url
    if favicon_url is None and derive_favicon:
        favicon_url = generate_favicon_url(extract_domain(url_str))

    tag_objects = await get_or_create_tags(db, user_id, data.tags)
    bookmark = Bookmark(
        user_id=user_id,
        url=url_str,
        title=data.title,
        description=data.description,
        favicon_url=favicon_url,
        priority=Priority(data.priority).value,
        status=BookmarkStatus.TODO.value,
        reviewed_at=None,
    )
    bookmark.tag_objects = tag_objects
    db.add(bookmark)
    await db.flush()
    await db.refresh(bookmark)
    # Ensure tag_objects is loaded for the response
    await db.refresh(bookmark, attribute_names=["tag_objects"])
    return bookmark


async def get_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> Bookmark | None:
    """
    Get a bookmark by ID, scoped to user.

    Returns:
        The bookmark if it exists and belongs to the user, None otherwise.
    """
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def search_bookmarks(
    db: AsyncSession,
    user_id: UUID,
    query: str | None = None,
    status: BookmarkStatus | None = None,
    priority: Priority | None = None,
    tag: str | None = None,
    offset: int = 0,
    limit: int = 20,
) -> tuple[list[Bookmark], int]:
    """
    Search and filter bookmarks for a user with pagination.

    Args:
        db: Database session.
        user_id: User ID to scope bookmarks.
        query: Case-insensitive text search across title, description and url.
        status: Only bookmarks in this status.
        priority: Only bookmarks with this priority.
        tag: Only bookmarks carrying this tag (matched case-insensitively).
        offset: Pagination offset.
        limit: Pagination limit.

    Returns:
        Tuple of (bookmarks with TODO first then newest first, total count).
    """
    base_query = (
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.user_id == user_id)
    )

    if status is not None:
        base_query = base_query.where(Bookmark.status == BookmarkStatus(status).value)
    if priority is not None:
        base_query = base_query.where(Bookmark.priority == Priority(priority).value)

    if query:
        search_pattern = f"%{escape_ilike(query)}%"
        base_query = base_query.where(
            or_(
                Bookmark.title.ilike(search_pattern, escape="\\"),
                Bookmark.description.ilike(search_pattern, escape="\\"),
                Bookmark.url.ilike(search_pattern, escape="\\"),
            ),
        )

    if tag and tag.strip():
        subq = (
            select(bookmark_tags.c.bookmark_id)
            .join(Tag, bookmark_tags.c.tag_id == Tag.id)
            .where(
                bookmark_tags.c.bookmark_id == Bookmark.id,
                Tag.name == tag.lower().strip(),
                Tag.user_id == user_id,
            )
        )
        base_query = base_query.where(exists(subq))

    # Get total count before pagination
    count_query = select(func.count()).select_from(base_query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Unreviewed items first, then newest first; id breaks ties deterministically
    todo_first = case((Bookmark.status == BookmarkStatus.TODO.value, 0), else_=1)
    base_query = (
        base_query
        .order_by(todo_first, Bookmark.created_at.desc(), Bookmark.id.desc())
        .offset(offset)
        .limit(limit)
    )

    result = await db.execute(base_query)
    return list(result.scalars().all()), total


async def update_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
    data: BookmarkUpdate,
) -> Bookmark | None:
    """
    Partially update a bookmark. Returns None if not found or wrong user.

    A provided tag list replaces all existing associations. A status change
    goes through apply_status_change so reviewed_at follows the workflow.

    Note: Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return None

    update_data = data.model_dump(exclude_unset=True)

    # Handle tags and status separately
    new_tags = update_data.pop("tags", None)
    new_status = update_data.pop("status", None)

    for field, value in update_data.items():
        # title and priority are required columns; an explicit null leaves them as-is
        if value is None and field in ("title", "priority"):
            continue
        setattr(bookmark, field, value)

    if new_status is not None:
        apply_status_change(bookmark, BookmarkStatus(new_status))

    if new_tags is not None:
        await update_bookmark_tags(db, bookmark, new_tags)

    await db.flush()
    await db.refresh(bookmark)
    await db.refresh(bookmark, attribute_names=["tag_objects"])
    return bookmark


async def delete_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> bool:
    """
    Permanently delete a bookmark and its tag associations.

    The tags themselves are kept.

    Returns:
        True if deleted, False if not found.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return False

    await db.delete(bookmark)
    await db.flush()
    return True


async def _owned_ids(db: AsyncSession, user_id: UUID, bookmark_ids: list[UUID]) -> list[UUID]:
    """Subset of bookmark_ids that belong to the user."""
    result = await db.execute(
        select(Bookmark.id).where(
            Bookmark.id.in_(bookmark_ids),
            Bookmark.user_id == user_id,
        ),
    )
    return list(result.scalars().all())


def _expire_tag_objects(db: AsyncSession, bookmark_ids: list[UUID]) -> None:
    """Mark loaded tag collections stale after the junction table changed underneath them."""
    ids = set(bookmark_ids)
    for obj in list(db.identity_map.values()):
        if isinstance(obj, Bookmark) and obj.id in ids:
            db.expire(obj, ["tag_objects"])


async def bulk_update(
    db: AsyncSession,
    user_id: UUID,
    request: BulkOperationRequest,
) -> int:
    """
    Apply one action to many of a user's bookmarks.

    Ids that don't exist or belong to another user are silently excluded.
    The request schema has already normalized `value` (lowercase tag name or
    uppercase priority).

    Returns:
        Number of bookmarks affected. For add_tag this counts every owned
        bookmark, including ones that already had the tag; for remove_tag it
        counts associations actually removed.
    """
    action = request.action
    ids = list(dict.fromkeys(request.bookmark_ids))
    owned = await _owned_ids(db, user_id, ids)
    if not owned:
        return 0

    # Counts come from the owned id set; rowcount is unreliable with RETURNING
    if action in BULK_STATUS_ACTIONS:
        target = BULK_STATUS_ACTIONS[action]
        await db.execute(
            update(Bookmark)
            .where(Bookmark.id.in_(owned))
            .values(
                status=target.value,
                # Only a real transition stamps reviewed_at
                reviewed_at=case(
                    (Bookmark.status != target.value, utc_now()),
                    else_=Bookmark.reviewed_at,
                ),
                updated_at=utc_now(),
            )
            .execution_options(synchronize_session="fetch"),
        )
        return len(owned)

    if action == BulkAction.SET_PRIORITY:
        await db.execute(
            update(Bookmark)
            .where(Bookmark.id.in_(owned))
            .values(priority=Priority(request.value).value, updated_at=utc_now())
            .execution_options(synchronize_session="fetch"),
        )
        return len(owned)

    if action == BulkAction.DELETE:
        await db.execute(
            delete(bookmark_tags).where(bookmark_tags.c.bookmark_id.in_(owned)),
        )
        await db.execute(
            delete(Bookmark)
            .where(Bookmark.id.in_(owned))
            .execution_options(synchronize_session="fetch"),
        )
        return len(owned)

    if action == BulkAction.ADD_TAG:
        tag = await get_or_create_tag(db, user_id, validate_and_normalize_tag(request.value))
        linked = await db.execute(
            select(bookmark_tags.c.bookmark_id).where(
                bookmark_tags.c.tag_id == tag.id,
                bookmark_tags.c.bookmark_id.in_(owned),
            ),
        )
        already_linked = set(linked.scalars().all())
        missing = [
            {"bookmark_id": bookmark_id, "tag_id": tag.id}
            for bookmark_id in owned
            if bookmark_id not in already_linked
        ]
        if missing:
            await db.execute(insert(bookmark_tags), missing)
        _expire_tag_objects(db, owned)
        return len(owned)

    if action == BulkAction.REMOVE_TAG:
        tag = await get_tag_by_name(db, user_id, request.value)
        if tag is None:
            return 0
        result = await db.execute(
            delete(bookmark_tags).where(
                bookmark_tags.c.tag_id == tag.id,
                bookmark_tags.c.bookmark_id.in_(owned),
            ),
        )
        _expire_tag_objects(db, owned)
        return result.rowcount

    raise ValueError(f"Unsupported bulk action: {action}")


async def import_bookmarks(
    db: AsyncSession,
    user_id: UUID,
    items: list[BookmarkImportItem],
    batch_size: int = 50,
) -> BookmarkImportResponse:
    """
    Import already-parsed bookmarks.

    Items are processed in fixed-size batches to bound per-request work.
    Batches are not transactional groups: each item runs in its own
    savepoint, so one failure is recorded and the rest carry on. URLs the
    user already has are skipped. A folder becomes an extra lowercased tag.
    Imported bookmarks are TODO/MEDIUM with a derived favicon.
    """
    imported = 0
    skipped = 0
    errors: list[str] = []
    details: list[ImportItemResult] = []

    for start in range(0, len(items), batch_size):
        batch = items[start:start + batch_size]
        for item in batch:
            url_str = str(item.url)
            try:
                if await _check_url_exists(db, user_id, url_str):
                    skipped += 1
                    details.append(
                        ImportItemResult(url=url_str, status="skipped", reason="URL already exists"),
                    )
                    continue

                tag_names = list(item.tags)
                if item.folder and item.folder.strip():
                    tag_names.append(item.folder.lower())

                async with db.begin_nested():
                    await create_bookmark(
                        db,
                        user_id,
                        BookmarkCreate(
                            url=item.url,
                            title=item.title,
                            description=item.description,
                            priority=Priority.MEDIUM,
                            tags=tag_names,
                        ),
                    )
            except (SQLAlchemyError, ValueError) as e:
                logger.warning("Failed to import bookmark %s: %s", url_str, e)
                errors.append(f"{item.title}: {e}")
                details.append(ImportItemResult(url=url_str, status="error", reason=str(e)))
                continue

            imported += 1
            details.append(ImportItemResult(url=url_str, status="imported"))

        logger.debug("Import batch starting at %d processed for user %s", start, user_id)

    return BookmarkImportResponse(
        imported=imported,
        skipped=skipped,
        errors=errors,
        details=details,
        summary=f"Imported {imported} bookmark(s), skipped {skipped}, {len(errors)} error(s)",
    )


async def get_stats(db: AsyncSession, user_id: UUID) -> StatsResponse:
    """Dashboard statistics for a user."""
    status_rows = await db.execute(
        select(Bookmark.status, func.count())
        .where(Bookmark.user_id == user_id)
        .group_by(Bookmark.status),
    )
    status_counts = {status.value: 0 for status in BookmarkStatus}
    for status, count in status_rows.all():
        status_counts[status] = count

    priority_rows = await db.execute(
        select(Bookmark.priority, func.count())
        .where(
            Bookmark.user_id == user_id,
            Bookmark.status == BookmarkStatus.TODO.value,
        )
        .group_by(Bookmark.priority),
    )
    priority_counts = {priority.value: 0 for priority in Priority}
    for priority, count in priority_rows.all():
        priority_counts[priority] = count

    total_tags = await db.scalar(
        select(func.count()).select_from(Tag).where(Tag.user_id == user_id),
    ) or 0

    recent = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
        .limit(5),
    )

    usage = func.count(bookmark_tags.c.bookmark_id).label("count")
    top_rows = await db.execute(
        select(Tag, usage)
        .outerjoin(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .where(Tag.user_id == user_id)
        .group_by(Tag.id)
        .order_by(usage.desc(), Tag.name.asc())
        .limit(5),
    )

    total = sum(status_counts.values())
    processed = total - status_counts[BookmarkStatus.TODO.value]
    return StatsResponse(
        overview=StatsOverview(
            total_bookmarks=total,
            todo_count=status_counts[BookmarkStatus.TODO.value],
            reviewed_count=status_counts[BookmarkStatus.REVIEWED.value],
            archived_count=status_counts[BookmarkStatus.ARCHIVED.value],
            discarded_count=status_counts[BookmarkStatus.DISCARDED.value],
            total_tags=total_tags,
            processed_count=processed,
            productivity_rate=round(processed / total * 100) if total else 0,
        ),
        breakdown=StatsBreakdown(status=status_counts, priority=priority_counts),
        recent_bookmarks=[RecentBookmark.model_validate(b) for b in recent.scalars().all()],
        top_tags=[
            TopTag(id=tag.id, name=tag.name, color=tag.color, count=count)
            for tag, count in top_rows.all()
        ],
    )
