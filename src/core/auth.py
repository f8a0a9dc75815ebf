"""
Authentication for the web app and for bot/integration channels.

Two strategies share one small interface:
- SessionTokenAuthenticator: HS256 JWTs issued by the web frontend, mapped to
  a user by their email claim.
- SharedKeyAuthenticator: a secret shared with a bot or webhook provider,
  compared in constant time against configured keys. No key is built in; an
  empty key list rejects every request.
"""
import hmac
from abc import ABC, abstractmethod
from dataclasses import dataclass

import jwt
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User
from services.user_service import get_or_create_user

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

DEV_USER_EMAIL = "dev@localhost"
TELEGRAM_SECRET_HEADER = "x-telegram-bot-api-secret-token"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


@dataclass
class Principal:
    """Who a request was authenticated as, and by which strategy."""

    strategy: str
    user: User | None = None


class Authenticator(ABC):
    """Turns a presented credential into a Principal or rejects it with 401."""

    strategy: str

    @abstractmethod
    async def authenticate(self, credential: str | None, db: AsyncSession) -> Principal:
        ...


class SessionTokenAuthenticator(Authenticator):
    """Validates session JWTs signed with SESSION_SECRET."""

    strategy = "session"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def decode(self, token: str) -> dict:
        """
        Decode and validate a session token.

        Raises:
            HTTPException: If the token is invalid or expired, or no secret is configured.
        """
        if not self.settings.session_secret:
            raise _unauthorized("Session authentication is not configured")
        try:
            return jwt.decode(
                token,
                self.settings.session_secret,
                algorithms=[self.settings.session_algorithm],
            )
        except jwt.ExpiredSignatureError:
            raise _unauthorized("Token has expired")
        except jwt.PyJWTError as e:
            raise _unauthorized(f"Invalid token: {e}")

    async def authenticate(self, credential: str | None, db: AsyncSession) -> Principal:
        """
        Resolve the session user, creating them on first sight.

        In DEV_MODE, bypasses auth and returns a local development user.
        """
        if self.settings.dev_mode:
            user = await get_or_create_user(db, email=DEV_USER_EMAIL, name="Developer")
            return Principal(strategy="dev", user=user)

        if not credential:
            raise _unauthorized("Not authenticated")

        payload = self.decode(credential)
        email = payload.get("email") or payload.get("sub")
        if not email:
            raise _unauthorized("Invalid token: missing email claim")

        user = await get_or_create_user(db, email=email, name=payload.get("name"))
        return Principal(strategy=self.strategy, user=user)


class SharedKeyAuthenticator(Authenticator):
    """
    Accepts a request when it presents one of the configured keys.

    The key may be sent bare or with a "Bearer " prefix.
    """

    def __init__(self, strategy: str, keys: list[str]) -> None:
        self.strategy = strategy
        self.keys = [key for key in keys if key]

    def verify(self, credential: str | None) -> bool:
        if not credential or not self.keys:
            return False
        presented = credential.removeprefix("Bearer ").strip().encode()
        # Compare against every key so timing doesn't reveal which one matched
        matches = [hmac.compare_digest(presented, key.encode()) for key in self.keys]
        return any(matches)

    async def authenticate(self, credential: str | None, db: AsyncSession) -> Principal:  # noqa: ARG002
        if not self.verify(credential):
            raise _unauthorized("Invalid or missing API key")
        return Principal(strategy=self.strategy)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """Dependency that validates the session token and returns the current user."""
    token = credentials.credentials if credentials is not None else None
    principal = await SessionTokenAuthenticator(settings).authenticate(token, db)
    return principal.user


async def require_integration_key(
    authorization: str | None = Header(default=None),
    x_api_key: str | None = Header(default=None),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Dependency for bot/integration endpoints authenticated by INTEGRATION_API_KEYS."""
    authenticator = SharedKeyAuthenticator("integration_key", settings.integration_api_keys)
    return await authenticator.authenticate(x_api_key or authorization, db)


async def require_telegram_secret(
    secret_token: str | None = Header(default=None, alias=TELEGRAM_SECRET_HEADER),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Dependency for the Telegram webhook, checking Telegram's secret token header."""
    authenticator = SharedKeyAuthenticator(
        "telegram_secret",
        [settings.telegram_webhook_secret],
    )
    return await authenticator.authenticate(secret_token, db)
