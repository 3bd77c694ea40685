"""
Configuration and settings for the content backend.

``Settings`` only collects raw values from the environment (and ``.env``);
presence and format checks live in ``cms_backend.env``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    # Database (hosted Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, validation_alias="CMS_USE_IN_MEMORY_BACKENDS"
    )

    # Live updates (Redis pub/sub)
    redis_url: Optional[str] = Field(default=None)
    redis_channel_prefix: str = Field(default="cms:changes")

    # Public site
    site_url: Optional[str] = Field(default=None)

    # Email (SMTP). Kept as raw strings so validation can report bad values.
    smtp_host: Optional[str] = Field(default=None)
    smtp_port: Optional[str] = Field(default=None)
    smtp_user: Optional[str] = Field(default=None)
    smtp_pass: Optional[str] = Field(default=None)
    email_from: Optional[str] = Field(default=None)
    email_to: Optional[str] = Field(default=None)
    smtp_timeout_seconds: float = Field(default=30.0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
