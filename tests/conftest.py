"""Pytest fixtures for testing."""
import os

# Must be set before any app imports that trigger Settings validation
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
# Ensure tests run in dev mode (bypasses auth) regardless of local .env
os.environ["DEV_MODE"] = "true"

from collections.abc import AsyncGenerator, Callable, Generator  # noqa: E402
from unittest.mock import AsyncMock, patch  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from core.config import Settings, get_settings  # noqa: E402
from models import Base, User  # noqa: E402
from services.url_scraper import PageMetadata  # noqa: E402
from helpers import TEST_DATABASE_URL, make_metadata, make_settings  # noqa: E402


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create a fresh in-memory database for each test.

    pysqlite's own transaction handling breaks SAVEPOINT, so it is disabled
    and BEGIN is emitted explicitly.
    """
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool, echo=False)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # noqa: ANN001, ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_connection(async_engine: AsyncEngine) -> AsyncGenerator[AsyncConnection]:
    """Create a connection with a transaction that will be rolled back after the test."""
    async with async_engine.connect() as connection:
        transaction = await connection.begin()
        try:
            yield connection
        finally:
            await transaction.rollback()


@pytest.fixture
async def db_session(db_connection: AsyncConnection) -> AsyncGenerator[AsyncSession]:
    """
    Create an async session bound to the test transaction.

    Uses savepoints so the session's flush/commit work inside the outer
    test transaction.
    """
    session_factory = async_sessionmaker(
        bind=db_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """A user owning the bookmarks created directly through services."""
    user = User(email="alice@gmail.com", name="Alice")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """A second user, for ownership checks."""
    user = User(email="bob@gmail.com", name="Bob")
    db_session.add(user)
    await db_session.flush()
    return user


@pytest.fixture
def settings() -> Settings:
    """Settings with channel credentials configured."""
    return make_settings(
        integration_api_keys_str="test-key,second-key",
        telegram_webhook_secret="telegram-secret",
        whatsapp_verify_token="verify-me",
        app_url="https://bookmarks.example.com",
    )


@pytest.fixture
def mock_extract_metadata() -> Generator[AsyncMock]:
    """
    Replace page fetching in the ingestion front door.

    By default each URL resolves to domain-only metadata, as if the fetch
    failed. Tests set `side_effect` or `return_value` for specific pages.
    """

    async def _domain_only(url: str, timeout: float = 10.0) -> PageMetadata:  # noqa: ARG001, ASYNC109
        return make_metadata(url, error="Mocked - no network call")

    with patch(
        "services.ingest_service.extract_metadata",
        new_callable=AsyncMock,
        side_effect=_domain_only,
    ) as mock:
        yield mock


@pytest.fixture
async def client(
    db_session: AsyncSession,
    settings: Settings,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session and settings overrides."""
    get_settings.cache_clear()

    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = lambda: settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def override_settings() -> Callable[..., Settings]:
    """Swap the settings used by API dependencies for the rest of the test."""
    from api.main import app

    def _override(**overrides: object) -> Settings:
        new_settings = make_settings(**overrides)
        app.dependency_overrides[get_settings] = lambda: new_settings
        return new_settings

    return _override
