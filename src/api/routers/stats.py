"""Dashboard statistics endpoint."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.stats import StatsResponse
from services import bookmark_service

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> StatsResponse:
    """
    Get review workflow statistics for the current user.

    Includes counts per status, the priority mix of TODO items, the five most
    recent bookmarks and the five most used tags.
    """
    return await bookmark_service.get_stats(db, current_user.id)
