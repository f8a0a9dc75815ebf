"""Service layer for tag operations."""
import logging
import random
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.tag import TagCreate, TagUpdate, TagWithCount
from schemas.validators import validate_and_normalize_tags
from services.utils import escape_ilike

logger = logging.getLogger(__name__)

TAG_COLORS = [
    "#ef4444",
    "#f97316",
    "#eab308",
    "#22c55e",
    "#06b6d4",
    "#3b82f6",
    "#8b5cf6",
    "#ec4899",
    "#6b7280",
    "#84cc16",
    "#f59e0b",
    "#10b981",
    "#f43f5e",
]


class TagAlreadyExistsError(Exception):
    """Raised when creating or renaming a tag to a name the user already has."""

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__(f"Tag '{tag_name}' already exists")


def random_tag_color() -> str:
    """Pick a display color from the palette."""
    return random.choice(TAG_COLORS)  # noqa: S311


async def get_tag_by_name(
    db: AsyncSession,
    user_id: UUID,
    tag_name: str,
) -> Tag | None:
    """
    Get a tag by name for a user.

    Args:
        db: Database session.
        user_id: User ID to scope the tag.
        tag_name: Name of the tag to find (matched case-insensitively).

    Returns:
        The Tag if found, None otherwise.
    """
    normalized = tag_name.lower().strip()
    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            Tag.name == normalized,
        ),
    )
    return result.scalar_one_or_none()


async def get_or_create_tag(
    db: AsyncSession,
    user_id: UUID,
    name: str,
    color: str | None = None,
) -> Tag:
    """
    Find a user's tag by lowercased name, creating it if absent.

    The insert runs inside a savepoint. If a concurrent request created the
    same tag first, the unique constraint violation rolls back only the
    savepoint and the existing row is returned.
    """
    normalized = name.lower().strip()
    existing = await get_tag_by_name(db, user_id, normalized)
    if existing is not None:
        return existing

    tag = Tag(user_id=user_id, name=normalized, color=color or random_tag_color())
    try:
        async with db.begin_nested():
            db.add(tag)
            await db.flush()
    except IntegrityError:
        logger.info("Tag '%s' created concurrently for user %s; reusing it", normalized, user_id)
        existing = await get_tag_by_name(db, user_id, normalized)
        if existing is None:
            raise
        return existing
    return tag


async def get_or_create_tags(
    db: AsyncSession,
    user_id: UUID,
    tag_names: list[str],
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Names are normalized (lowercased, trimmed, de-duplicated) first, so
    "React" and "react" resolve to the same row.

    Args:
        db: Database session.
        user_id: User ID to scope tags.
        tag_names: List of tag names to get or create.

    Returns:
        List of Tag objects (existing or newly created), in input order.

    Raises:
        ValueError: If a tag name is longer than the configured maximum.
    """
    if not tag_names:
        return []

    normalized = validate_and_normalize_tags(tag_names)
    if not normalized:
        return []

    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            Tag.name.in_(normalized),
        ),
    )
    existing_tags = {tag.name: tag for tag in result.scalars()}

    tags = []
    for name in normalized:
        if name in existing_tags:
            tags.append(existing_tags[name])
        else:
            tags.append(await get_or_create_tag(db, user_id, name))
    return tags


async def get_user_tags_with_counts(
    db: AsyncSession,
    user_id: UUID,
    search: str | None = None,
) -> list[TagWithCount]:
    """
    Get all tags for a user with the number of bookmarks using each.

    Tags with no bookmarks are included with a count of zero.

    Args:
        db: Database session.
        user_id: User ID to scope tags.
        search: Optional case-insensitive substring filter on the tag name.

    Returns:
        Tags sorted by name.
    """
    # COUNT ignores NULLs from the outer join, so unused tags get 0
    query = (
        select(Tag, func.count(bookmark_tags.c.bookmark_id).label("bookmark_count"))
        .outerjoin(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .where(Tag.user_id == user_id)
        .group_by(Tag.id)
        .order_by(Tag.name.asc())
    )
    if search and search.strip():
        pattern = f"%{escape_ilike(search.strip().lower())}%"
        query = query.where(Tag.name.ilike(pattern, escape="\\"))

    result = await db.execute(query)
    return [
        TagWithCount(
            id=tag.id,
            name=tag.name,
            color=tag.color,
            created_at=tag.created_at,
            bookmark_count=count,
        )
        for tag, count in result.all()
    ]


async def get_tag(db: AsyncSession, user_id: UUID, tag_id: UUID) -> Tag | None:
    """Get a tag by id, scoped to the user."""
    result = await db.execute(
        select(Tag).where(Tag.id == tag_id, Tag.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def create_tag(db: AsyncSession, user_id: UUID, data: TagCreate) -> Tag:
    """
    Create a tag explicitly.

    Raises:
        TagAlreadyExistsError: If the user already has a tag with this name.
    """
    if await get_tag_by_name(db, user_id, data.name) is not None:
        raise TagAlreadyExistsError(data.name)

    tag = Tag(user_id=user_id, name=data.name, color=data.color or random_tag_color())
    try:
        async with db.begin_nested():
            db.add(tag)
            await db.flush()
    except IntegrityError as e:
        # Another request created the tag between check and flush
        raise TagAlreadyExistsError(data.name) from e
    return tag


async def update_tag(
    db: AsyncSession,
    user_id: UUID,
    tag_id: UUID,
    data: TagUpdate,
) -> Tag | None:
    """
    Rename and/or recolor a tag.

    Returns:
        The updated Tag, or None if the tag doesn't exist for this user.

    Raises:
        TagAlreadyExistsError: If renaming to a name the user already has.
    """
    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        return None

    if data.name is not None and data.name != tag.name:
        if await get_tag_by_name(db, user_id, data.name) is not None:
            raise TagAlreadyExistsError(data.name)
        tag.name = data.name
    if data.color is not None:
        tag.color = data.color

    try:
        await db.flush()
    except IntegrityError as e:
        # Race: another request took the name between check and flush
        raise TagAlreadyExistsError(data.name or "") from e
    return tag


async def delete_tag(db: AsyncSession, user_id: UUID, tag_id: UUID) -> bool:
    """
    Delete a tag. Its bookmark associations are removed; bookmarks are kept.

    Returns:
        True if the tag was deleted, False if it doesn't exist for this user.
    """
    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        return False

    # Junction rows are removed with the tag
    await db.delete(tag)
    await db.flush()
    return True


async def update_bookmark_tags(
    db: AsyncSession,
    bookmark: Bookmark,
    tag_names: list[str],
) -> None:
    """
    Update a bookmark's tags using the junction table.

    Clears existing tags and sets new ones. Detached tags are kept for reuse.
    The bookmark's tag_objects relationship must already be loaded.

    Args:
        db: Database session.
        bookmark: The bookmark to update.
        tag_names: New list of tag names.
    """
    if tag_names:
        tag_objects = await get_or_create_tags(db, bookmark.user_id, tag_names)
    else:
        tag_objects = []

    bookmark.tag_objects = tag_objects
    await db.flush()
