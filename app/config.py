"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="MovieFeed", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    omdb_api_key: str | None = Field(
        default=None,
        alias="OMDB_API_KEY",
        validation_alias=AliasChoices("OMDB_API_KEY", "REACT_APP_OMDB_API_KEY"),
    )
    omdb_api_url: HttpUrl = Field(
        default="https://www.omdbapi.com", alias="OMDB_API_URL"
    )
    catalog_timeout_seconds: float = Field(
        default=10.0, alias="CATALOG_TIMEOUT", gt=0, le=120
    )

    profile_store_url: HttpUrl | None = Field(
        default=None,
        alias="PROFILE_STORE_URL",
        validation_alias=AliasChoices(
            "PROFILE_STORE_URL", "SUPABASE_URL", "REACT_APP_SUPABASE_URL"
        ),
    )
    profile_store_key: str | None = Field(
        default=None,
        alias="PROFILE_STORE_KEY",
        validation_alias=AliasChoices(
            "PROFILE_STORE_KEY",
            "SUPABASE_ANON_KEY",
            "SUPABASE_PUBLISHABLE_KEY",
            "REACT_APP_SUPABASE_ANON_KEY",
        ),
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./moviefeed.db", alias="DATABASE_URL"
    )

    recommendation_target_count: int = Field(
        default=15, alias="RECOMMENDATION_TARGET_COUNT", ge=1, le=50
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("omdb_api_key", "profile_store_key", mode="before")
    @classmethod
    def _strip_blank(cls, value: object) -> object:
        """Treat blank credentials as missing."""

        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @property
    def uses_remote_profile_store(self) -> bool:
        """Return whether profiles live in the hosted REST backend."""

        return self.profile_store_url is not None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
