"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    APP_CONFIG_PATH: str = Field(default="app_config.json")

    MAX_ATTEMPTS_PLANNED: int = Field(default=3, ge=1)
    MAX_FOLLOW_UP_STREAK: int = Field(default=3, ge=0)
    PLAN_TOPIC_COUNT: int = Field(default=2, ge=1)
    PLAN_QUESTIONS_PER_TOPIC: int = Field(default=3, ge=1)
    CLOSING_STATEMENT: str = "Thank you for your time. This concludes the interview."

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
