"""Liveness check reporting whether the bookmark tables can be queried."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_async_session
from models import Bookmark, Tag, User


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

CHECKED_MODELS = (User, Bookmark, Tag)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # healthy | degraded
    database: str  # healthy | unhealthy
    tables: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_async_session),
) -> HealthResponse:
    """
    Query each table the service writes to with a one-row select.

    Stops at the first failure, since a failed statement leaves the
    transaction unusable; tables not reached are reported as unreachable.
    """
    reachable: set[str] = set()
    try:
        for model in CHECKED_MODELS:
            await db.execute(select(model.id).limit(1))
            reachable.add(model.__tablename__)
    except SQLAlchemyError:
        logger.exception("Database health check failed")

    tables = {model.__tablename__: model.__tablename__ in reachable for model in CHECKED_MODELS}
    healthy = all(tables.values())
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        database="healthy" if healthy else "unhealthy",
        tables=tables,
    )
