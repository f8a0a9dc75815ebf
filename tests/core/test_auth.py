"""Tests for session and shared-key authentication."""
from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import DEV_USER_EMAIL, SessionTokenAuthenticator, SharedKeyAuthenticator
from helpers import make_settings

SECRET = "unit-test-session-secret-with-enough-bytes"


def _token(payload: dict, secret: str = SECRET) -> str:
    return jwt.encode(payload, secret, algorithm="HS256")


class TestSharedKeyAuthenticator:
    """Tests for shared-key verification."""

    def test__verify__matches_any_configured_key(self) -> None:
        authenticator = SharedKeyAuthenticator("integration_key", ["first", "second"])
        assert authenticator.verify("first") is True
        assert authenticator.verify("second") is True

    def test__verify__accepts_bearer_prefix(self) -> None:
        authenticator = SharedKeyAuthenticator("integration_key", ["secret"])
        assert authenticator.verify("Bearer secret") is True

    def test__verify__rejects_wrong_or_missing_key(self) -> None:
        authenticator = SharedKeyAuthenticator("integration_key", ["secret"])
        assert authenticator.verify("nope") is False
        assert authenticator.verify("") is False
        assert authenticator.verify(None) is False

    def test__verify__no_configured_keys_rejects_everything(self) -> None:
        authenticator = SharedKeyAuthenticator("integration_key", ["", ""])
        assert authenticator.verify("") is False
        assert authenticator.verify("anything") is False

    async def test__authenticate__returns_principal(self, db_session: AsyncSession) -> None:
        authenticator = SharedKeyAuthenticator("telegram_secret", ["secret"])
        principal = await authenticator.authenticate("secret", db_session)
        assert principal.strategy == "telegram_secret"
        assert principal.user is None

    async def test__authenticate__invalid_key_is_401(self, db_session: AsyncSession) -> None:
        authenticator = SharedKeyAuthenticator("integration_key", ["secret"])
        with pytest.raises(HTTPException) as exc_info:
            await authenticator.authenticate("wrong", db_session)
        assert exc_info.value.status_code == 401


class TestSessionTokenAuthenticator:
    """Tests for session JWT authentication."""

    def test__decode__valid_token(self) -> None:
        authenticator = SessionTokenAuthenticator(make_settings(session_secret=SECRET))
        payload = authenticator.decode(_token({"email": "alice@gmail.com"}))
        assert payload["email"] == "alice@gmail.com"

    def test__decode__expired_token(self) -> None:
        authenticator = SessionTokenAuthenticator(make_settings(session_secret=SECRET))
        expired = _token({"email": "a@gmail.com", "exp": datetime.now(UTC) - timedelta(minutes=5)})
        with pytest.raises(HTTPException) as exc_info:
            authenticator.decode(expired)
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Token has expired"

    def test__decode__wrong_signature(self) -> None:
        authenticator = SessionTokenAuthenticator(make_settings(session_secret=SECRET))
        forged = _token({"email": "a@gmail.com"}, secret="another-secret-with-enough-bytes-too")
        with pytest.raises(HTTPException) as exc_info:
            authenticator.decode(forged)
        assert exc_info.value.detail.startswith("Invalid token")

    def test__decode__no_secret_configured(self) -> None:
        authenticator = SessionTokenAuthenticator(make_settings())
        with pytest.raises(HTTPException) as exc_info:
            authenticator.decode(_token({"email": "a@gmail.com"}))
        assert exc_info.value.status_code == 401

    async def test__authenticate__dev_mode_uses_dev_user(self, db_session: AsyncSession) -> None:
        authenticator = SessionTokenAuthenticator(make_settings(dev_mode=True))
        principal = await authenticator.authenticate(None, db_session)
        assert principal.strategy == "dev"
        assert principal.user.email == DEV_USER_EMAIL

    async def test__authenticate__creates_user_from_email_claim(
        self,
        db_session: AsyncSession,
    ) -> None:
        authenticator = SessionTokenAuthenticator(
            make_settings(dev_mode=False, session_secret=SECRET),
        )
        token = _token({"email": "carol@gmail.com", "name": "Carol"})

        first = await authenticator.authenticate(token, db_session)
        second = await authenticator.authenticate(token, db_session)

        assert first.user.email == "carol@gmail.com"
        assert first.user.name == "Carol"
        assert first.user.id == second.user.id

    async def test__authenticate__missing_token(self, db_session: AsyncSession) -> None:
        authenticator = SessionTokenAuthenticator(
            make_settings(dev_mode=False, session_secret=SECRET),
        )
        with pytest.raises(HTTPException) as exc_info:
            await authenticator.authenticate(None, db_session)
        assert exc_info.value.detail == "Not authenticated"

    async def test__authenticate__token_without_email(self, db_session: AsyncSession) -> None:
        authenticator = SessionTokenAuthenticator(
            make_settings(dev_mode=False, session_secret=SECRET),
        )
        with pytest.raises(HTTPException) as exc_info:
            await authenticator.authenticate(_token({"role": "user"}), db_session)
        assert exc_info.value.status_code == 401
