"""Dependency providers and settings management."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # Sync stub
    SYNC_DEFAULT_WINDOW_DAYS: int = 30
    SYNC_CAMPAIGNS_PER_CONNECTION: int = 3

    # Dashboard
    # The feed never shows more than 5 entries
    DASHBOARD_RECENT_INSIGHTS_LIMIT: int = Field(5, ge=1, le=5)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]
