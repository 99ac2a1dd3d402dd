"""Application settings and configuration management."""
from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/whitelist.db")

    DISCORD_TOKEN: str = ""
    DISCORD_GUILD_ID: Optional[str] = None

    APPLICATION_TTL_HOURS: int = Field(default=72, ge=1)
    EXPIRY_SWEEP_MINUTES: int = Field(default=30, ge=1)
    CARD_VALUE_LIMIT: int = Field(default=1024, ge=16)
    NOTE_MAX_LENGTH: int = Field(default=400, ge=1)
    THREAD_AUTO_ARCHIVE_MINUTES: int = 1440

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
