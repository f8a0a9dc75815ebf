"""
Service layer for user lookup and creation.

Channels without a session (chat bots, shared-key integrations) still need an
owner for the bookmarks they create. That owner is resolved by
DEFAULT_USER_POLICY, an ordered list of strategies tried until one returns a
user. The last strategy always creates one, so resolution never fails.
"""
import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models.user import User

logger = logging.getLogger(__name__)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Find a user by email address."""
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    email: str,
    name: str | None = None,
    user_id: UUID | None = None,
) -> User:
    """
    Find a user by email, creating them if absent.

    The insert runs inside a savepoint; if a concurrent request created the
    same user first, the existing row is returned.
    """
    user = await get_user_by_email(db, email)
    if user is not None:
        return user

    user = User(email=email, name=name)
    if user_id is not None:
        user.id = user_id
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError:
        existing = await get_user_by_email(db, email)
        if existing is None:
            raise
        return existing
    return user


@dataclass
class ResolutionContext:
    """Inputs available to default-user strategies."""

    settings: Settings
    email: str | None = None


class ByEmail:
    """Use the user whose email was given explicitly with the request."""

    name = "by_email"

    async def resolve(self, db: AsyncSession, context: ResolutionContext) -> User | None:
        if not context.email:
            return None
        return await get_user_by_email(db, context.email)


class ByConfiguredId:
    """Use the user configured as DEFAULT_USER_ID."""

    name = "by_configured_id"

    async def resolve(self, db: AsyncSession, context: ResolutionContext) -> User | None:
        if context.settings.default_user_id is None:
            return None
        return await db.get(User, context.settings.default_user_id)


class FirstExistingUser:
    """Use the oldest user in the database."""

    name = "first_existing_user"

    async def resolve(self, db: AsyncSession, context: ResolutionContext) -> User | None:  # noqa: ARG002
        result = await db.execute(
            select(User).order_by(User.created_at.asc(), User.id.asc()).limit(1),
        )
        return result.scalar_one_or_none()


class CreateDefaultUser:
    """
    Create the default user.

    Uses DEFAULT_USER_ID as the id when configured, and the explicit email or
    DEFAULT_USER_EMAIL as the email.
    """

    name = "create_default_user"

    async def resolve(self, db: AsyncSession, context: ResolutionContext) -> User | None:
        email = context.email or context.settings.default_user_email
        return await get_or_create_user(
            db,
            email=email,
            name="Default User",
            user_id=context.settings.default_user_id,
        )


DEFAULT_USER_POLICY = [ByEmail(), ByConfiguredId(), FirstExistingUser(), CreateDefaultUser()]


async def resolve_default_user(
    db: AsyncSession,
    settings: Settings,
    email: str | None = None,
    policy: list | None = None,
) -> User:
    """
    Resolve the owner for a request that carries no session.

    Args:
        db: Database session.
        settings: Application settings (default user id/email).
        email: Email supplied by the caller, if any.
        policy: Strategies to try in order. Defaults to DEFAULT_USER_POLICY.

    Returns:
        The first user any strategy produces.
    """
    context = ResolutionContext(settings=settings, email=email)
    for strategy in policy if policy is not None else DEFAULT_USER_POLICY:
        user = await strategy.resolve(db, context)
        if user is not None:
            logger.debug("Default user resolved by %s: %s", strategy.name, user.id)
            return user
    raise LookupError("No default user strategy produced a user")
