"""
Configuration and settings for the planner backend.
"""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service and worker."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # Active-session cache (Redis)
    redis_url: Optional[str] = Field(default=None, env="REDIS_URL")
    session_key_prefix: str = Field(
        default="planner:session:", env="SESSION_KEY_PREFIX"
    )

    # S3-compatible storage for avatars and speech clips
    cos_endpoint: Optional[str] = Field(default=None, env="COS_ENDPOINT")
    cos_region: Optional[str] = Field(default=None, env="COS_REGION")
    cos_bucket: Optional[str] = Field(default=None, env="COS_BUCKET")
    aws_access_key_id: Optional[str] = Field(
        default=None, env="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, env="USE_IN_MEMORY_BACKENDS"
    )

    # Guardian engine
    timezone: str = Field(default="UTC", env="TIMEZONE")
    alert_poll_seconds: int = Field(default=30, env="ALERT_POLL_SECONDS")
    speak_alerts: bool = Field(default=False, env="SPEAK_ALERTS")

    # Unset disables passcode-only master access.
    master_passcode: Optional[str] = Field(default=None, env="MASTER_PASSCODE")

    def now(self) -> datetime:
        """Current wall-clock time in the planner's timezone."""
        return datetime.now(ZoneInfo(self.timezone))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
