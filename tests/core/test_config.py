"""Tests for application settings."""
import pytest
from pydantic import ValidationError

from core.config import Settings


def test__settings__dev_mode_rejects_remote_database() -> None:
    with pytest.raises(ValidationError, match="DEV_MODE cannot be enabled"):
        Settings(database_url="postgresql+asyncpg://user:pw@db.prod.example.com/app", dev_mode=True)


@pytest.mark.parametrize(
    "url",
    [
        "postgresql+asyncpg://user:pw@localhost:5432/app",
        "postgresql+asyncpg://user:pw@127.0.0.1/app",
        "sqlite+aiosqlite:///:memory:",
        "sqlite+aiosqlite:///./bookmarks.db",
    ],
)
def test__settings__dev_mode_allows_local_database(url: str) -> None:
    assert Settings(database_url=url, dev_mode=True).dev_mode is True


def test__settings__remote_database_fine_without_dev_mode() -> None:
    settings = Settings(database_url="postgresql+asyncpg://u:p@db.prod.example.com/app", dev_mode=False)
    assert settings.dev_mode is False


def test__settings__comma_separated_lists() -> None:
    settings = Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        cors_origins_str=" https://a.example.com , ,https://b.example.com",
        integration_api_keys_str="key-one, key-two,",
    )
    assert settings.cors_origins == ["https://a.example.com", "https://b.example.com"]
    assert settings.integration_api_keys == ["key-one", "key-two"]


def test__settings__channel_credentials_default_to_empty() -> None:
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
    assert settings.integration_api_keys == []
    assert settings.telegram_webhook_secret == ""
    assert settings.whatsapp_verify_token == ""


def test__settings__app_links() -> None:
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:", app_url="https://app.example.com/")
    assert settings.bookmarks_url == "https://app.example.com/bookmarks"
    assert settings.todo_url == "https://app.example.com/todo"


def test__settings__limits_defaults() -> None:
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
    assert settings.max_title_length == 500
    assert settings.max_tag_length == 50
    assert settings.metadata_fetch_timeout == 10.0
    assert settings.import_batch_size == 50
