"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse
from uuid import UUID

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Development mode - bypasses session auth for local development
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # Session tokens (HS256 JWTs issued by the web frontend)
    session_secret: str = Field(default="", validation_alias="SESSION_SECRET")
    session_algorithm: str = Field(default="HS256", validation_alias="SESSION_ALGORITHM")

    # Channel credentials - no defaults, an empty value rejects every request
    integration_api_keys_str: str = Field(default="", validation_alias="INTEGRATION_API_KEYS")
    telegram_webhook_secret: str = Field(default="", validation_alias="TELEGRAM_WEBHOOK_SECRET")
    whatsapp_verify_token: str = Field(default="", validation_alias="WHATSAPP_VERIFY_TOKEN")

    # Owner for channels that carry no session
    default_user_id: UUID | None = Field(default=None, validation_alias="DEFAULT_USER_ID")
    default_user_email: str = Field(
        default="default-user@bookmarks.local", validation_alias="DEFAULT_USER_EMAIL",
    )

    # Public URL of the web app, used for links in chat replies
    app_url: str = Field(default="http://localhost:3000", validation_alias="APP_URL")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    # Metadata extraction
    metadata_fetch_timeout: float = Field(default=10.0, validation_alias="METADATA_FETCH_TIMEOUT")

    # Field length limits
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_tag_length: int = Field(default=50, validation_alias="MAX_TAG_LENGTH")

    # Bulk import
    import_batch_size: int = Field(default=50, validation_alias="IMPORT_BATCH_SIZE")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE bypasses session authentication, so it is only allowed with a
        local database (localhost or an embedded SQLite file/memory database).
        """
        if not self.dev_mode:
            return self

        try:
            parsed = urlparse(self.database_url)
            scheme = parsed.scheme
            hostname = parsed.hostname or ""
        except ValueError:
            scheme = ""
            hostname = ""

        if scheme.startswith("sqlite"):
            return self

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def integration_api_keys(self) -> list[str]:
        """Parse comma-separated integration API keys into a list."""
        return [key.strip() for key in self.integration_api_keys_str.split(",") if key.strip()]

    @property
    def bookmarks_url(self) -> str:
        """Link to the bookmark list in the web app."""
        return f"{self.app_url.rstrip('/')}/bookmarks"

    @property
    def todo_url(self) -> str:
        """Link to the todo review list in the web app."""
        return f"{self.app_url.rstrip('/')}/todo"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
