"""Tag management endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.tag import TagCreate, TagListResponse, TagResponse, TagUpdate
from services import tag_service
from services.tag_service import TagAlreadyExistsError

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=TagListResponse)
async def list_tags(
    search: str | None = Query(default=None, description="Filter tags by name (case-insensitive)"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagListResponse:
    """
    Get all tags for the current user with their bookmark counts.

    Tags not used by any bookmark are included with a count of zero.
    Results are sorted by name.
    """
    tags = await tag_service.get_user_tags_with_counts(db, current_user.id, search)
    return TagListResponse(tags=tags)


@router.post("/", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """
    Create a tag. A color is picked from the palette when none is given.

    Returns 409 if the user already has a tag with this name.
    """
    try:
        tag = await tag_service.create_tag(db, current_user.id, data)
    except TagAlreadyExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e
    return TagResponse.model_validate(tag)


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(
    tag_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """Get a single tag by ID."""
    tag = await tag_service.get_tag(db, current_user.id, tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return TagResponse.model_validate(tag)


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: UUID,
    data: TagUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> TagResponse:
    """
    Rename and/or recolor a tag.

    Bookmarks using this tag reflect the new name automatically.

    Returns 404 if the tag doesn't exist.
    Returns 409 if a tag with the new name already exists.
    """
    try:
        tag = await tag_service.update_tag(db, current_user.id, tag_id, data)
    except TagAlreadyExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e
    if tag is None:
        raise HTTPException(status_code=404, detail="Tag not found")
    return TagResponse.model_validate(tag)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """
    Delete a tag.

    The tag is removed from every bookmark; the bookmarks themselves are kept.
    """
    deleted = await tag_service.delete_tag(db, current_user.id, tag_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Tag not found")
