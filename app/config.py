"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_TOTAL_COUNT = 18_000
ONE_DAY_SECONDS = 86_400

# An empty AniList answer is not trusted as authoritative: Jikan is still asked.
FALLBACK_ON_EMPTY = True


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Hawk", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    anilist_api_url: HttpUrl = Field(
        default="https://graphql.anilist.co", alias="ANILIST_API_URL"
    )
    jikan_api_url: HttpUrl = Field(
        default="https://api.jikan.moe/v4", alias="JIKAN_API_URL"
    )

    cache_ttl_seconds: int = Field(
        default=ONE_DAY_SECONDS, alias="CACHE_TTL", ge=60
    )
    cache_max_entries: int = Field(default=5_000, alias="CACHE_MAX_ENTRIES", ge=0)

    default_total_count: int = Field(
        default=DEFAULT_TOTAL_COUNT, alias="DEFAULT_TOTAL_COUNT", ge=0
    )
    search_page_size: int = Field(default=25, alias="SEARCH_PAGE_SIZE", ge=1, le=50)
    recommendation_limit: int = Field(
        default=10, alias="RECOMMENDATION_LIMIT", ge=0, le=25
    )
    fallback_on_empty: bool = Field(default=FALLBACK_ON_EMPTY, alias="FALLBACK_ON_EMPTY")

    database_url: str | None = Field(
        default="sqlite+aiosqlite:///./hawk_cache.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _blank_database_url(cls, value: object) -> object:
        """Treat an empty DATABASE_URL as "keep the cache in memory"."""

        if isinstance(value, str) and not value.strip():
            return None
        return value

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
