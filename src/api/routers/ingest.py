"""Create-from-URL endpoint for the web assistant."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from api.helpers import build_ingest_response
from models.user import User
from schemas.ingest import ExtractBookmarkRequest, ExtractBookmarkResponse
from services import ingest_service

router = APIRouter(prefix="/ai", tags=["ingest"])


@router.post(
    "/extract-bookmark",
    response_model=ExtractBookmarkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def extract_bookmark(
    data: ExtractBookmarkRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ExtractBookmarkResponse:
    """
    Create a bookmark from a URL, deriving title, description, tags and priority.

    Page metadata is fetched best-effort; an unreachable page still produces
    a bookmark with domain-derived values. `userMessage` is used as context
    for tagging and priority and becomes the start of the description.
    """
    result = await ingest_service.create_from_url(
        db, current_user.id, str(data.url), data.user_message, data.source,
    )
    return build_ingest_response(result, data.source)
