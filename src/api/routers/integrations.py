"""Create-from-URL endpoint for bots and integrations using a shared key."""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_settings, require_integration_key
from api.helpers import build_ingest_response
from core.auth import Principal
from core.config import Settings
from schemas.ingest import IntegrationBookmarkRequest, IntegrationBookmarkResponse
from services import ingest_service
from services.user_service import resolve_default_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.post(
    "/bookmark",
    response_model=IntegrationBookmarkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_integration_bookmark(
    data: IntegrationBookmarkRequest,
    principal: Principal = Depends(require_integration_key),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> IntegrationBookmarkResponse:
    """
    Create a bookmark on behalf of a bot.

    Authenticated with one of INTEGRATION_API_KEYS (header `X-API-Key` or
    `Authorization`). The owner is the user with `userEmail` if it exists,
    otherwise the default user. `chat_message` is ready to forward to the
    chat the link came from.
    """
    owner = await resolve_default_user(db, settings, email=data.user_email)
    logger.info("Integration bookmark for %s via %s", owner.id, principal.strategy)
    result = await ingest_service.create_from_url(
        db, owner.id, str(data.url), data.user_message, data.source,
    )
    response = build_ingest_response(result, data.source)
    return IntegrationBookmarkResponse(
        **response.model_dump(),
        chat_message=result.summary,
    )
