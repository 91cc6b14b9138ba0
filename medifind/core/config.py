from __future__ import annotations

import functools
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "MediFind API"
    environment: str = "development"
    secret_key: str = "changeme"

    database_url: str = "sqlite+aiosqlite:///./medifind.db"
    create_schema_on_startup: bool = True
    redis_url: str = "redis://localhost:6379/0"

    # Enrichment cache; 0 disables it
    api_cache_ttl_seconds: int = 3600

    store_match_threshold: float = 0.3
    medicine_match_threshold: float = 0.4

    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout_seconds: float = 10.0

    member_token_ttl_hours: int = 12

    # CORS configuration
    cors_origins: str = "*"

    rate_limit_enabled: bool = True
    rate_limit_default: str = "60/minute"

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
    }

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate SECRET_KEY meets security requirements."""
        insecure_defaults = [
            "changeme",
            "change-me",
            "dev-secret",
            "secret",
            "password",
        ]

        if len(v) < 32:
            raise ValueError(
                f"SECRET_KEY must be at least 32 characters long (current: {len(v)}). "
                "Generate a secure key with: openssl rand -base64 32"
            )

        if v.lower() in insecure_defaults:
            raise ValueError(
                "SECRET_KEY cannot be a default value. "
                "Generate a secure key with: openssl rand -base64 32"
            )

        return v

    @field_validator("store_match_threshold", "medicine_match_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 < v <= 1.0:
            raise ValueError("match thresholds must be within (0, 1]")
        return v

    @field_validator("gemini_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Optional[str]) -> Optional[str]:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@functools.lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
