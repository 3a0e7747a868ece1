"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``PERIODIZATION_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PERIODIZATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_title: str = "Periodization Block Service"

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Blocks
    default_block_duration: int = Field(default=4, ge=1)
    max_block_duration: int = Field(default=52, ge=1)
    require_tag: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
