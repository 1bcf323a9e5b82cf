"""Configuration management for neighborly."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Entity store
    sqlite_db_path: str = Field(default="data/neighborly.db", description="SQLite database file path")
    store_timeout_seconds: float = Field(
        default=10.0, description="Default bound for a single entity store call (in seconds)"
    )

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="production", description="Deployment environment reported to Logfire")

    # Request status audit
    enable_status_audit: bool = Field(
        default=True, description="Run the daily audit of request status against task status"
    )
    status_audit_hour: int = Field(default=3, description="Hour of day (0-23) the status audit runs")


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP
    ACTOR_HEADER: str = "X-Actor-Id"

    # Display
    UNTITLED_TASK: str = "Untitled Task"

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500  # Default pagination limit for list queries

    # Validation
    MAX_TITLE_LENGTH: int = 200
    MAX_CATEGORY_LENGTH: int = 100


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
