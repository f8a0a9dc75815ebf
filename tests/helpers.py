"""Builders shared by service and API tests."""
from core.config import Settings
from services.url_scraper import PageMetadata, extract_domain

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def make_settings(**overrides: object) -> Settings:
    """Settings for tests, independent of the environment's cached instance."""
    values: dict[str, object] = {"database_url": TEST_DATABASE_URL, "dev_mode": True}
    values.update(overrides)
    return Settings(**values)


def make_metadata(
    url: str,
    title: str | None = None,
    description: str = "",
    image: str = "",
    error: str | None = None,
) -> PageMetadata:
    """Build the metadata extract_metadata would return for a URL."""
    domain = extract_domain(url)
    return PageMetadata(
        url=url,
        title=title or domain,
        description=description,
        image=image,
        domain=domain,
        error=error,
    )
