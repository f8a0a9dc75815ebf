"""Bookmark lifecycle endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from core.config import Settings
from models.bookmark import BookmarkStatus, Priority
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkImportRequest,
    BookmarkImportResponse,
    BookmarkListResponse,
    BookmarkResponse,
    BookmarkUpdate,
    BulkOperationRequest,
    BulkOperationResponse,
)
from services import bookmark_service

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """
    Create a new bookmark.

    The bookmark starts in TODO. Tags are created on first use. When no
    favicon is supplied one is derived from the URL's domain.
    """
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    return BookmarkResponse.model_validate(bookmark)


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    q: str | None = Query(default=None, description="Search query (matches title, description, url)"),  # noqa: E501
    status: BookmarkStatus | None = Query(default=None, description="Filter by review status"),
    priority: Priority | None = Query(default=None, description="Filter by priority"),
    tag: str | None = Query(default=None, description="Filter by tag name"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=20, ge=1, le=100, description="Pagination limit"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """
    List bookmarks for the current user.

    - **q**: Text search across title, description and url (case-insensitive)
    - **status** / **priority** / **tag**: Exact filters
    - Results list TODO bookmarks first, then newest first
    """
    bookmarks, total = await bookmark_service.search_bookmarks(
        db=db,
        user_id=current_user.id,
        query=q,
        status=status,
        priority=priority,
        tag=tag,
        offset=offset,
        limit=limit,
    )
    items = [BookmarkResponse.model_validate(b) for b in bookmarks]
    has_more = offset + len(items) < total
    return BookmarkListResponse(
        items=items,
        total=total,
        offset=offset,
        limit=limit,
        has_more=has_more,
    )


@router.post("/bulk", response_model=BulkOperationResponse)
async def bulk_operation(
    data: BulkOperationRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BulkOperationResponse:
    """
    Apply one action to many bookmarks.

    Ids that don't belong to the current user are ignored. The response
    reports how many bookmarks were affected.
    """
    affected = await bookmark_service.bulk_update(db, current_user.id, data)
    return BulkOperationResponse(affected=affected, action=data.action)


@router.post("/import", response_model=BookmarkImportResponse)
async def import_bookmarks(
    data: BookmarkImportRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> BookmarkImportResponse:
    """
    Import up to 1000 already-parsed bookmarks.

    URLs the user already has are skipped. A failing item is reported in
    `details` without affecting the others.
    """
    return await bookmark_service.import_bookmarks(
        db, current_user.id, data.bookmarks, batch_size=settings.import_batch_size,
    )


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: UUID,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """
    Update a bookmark.

    A `tags` list replaces all existing tags. Moving to REVIEWED, ARCHIVED or
    DISCARDED stamps `reviewed_at`.
    """
    bookmark = await bookmark_service.update_bookmark(
        db, current_user.id, bookmark_id, data,
    )
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a bookmark. Its tags are kept."""
    deleted = await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bookmark not found")
