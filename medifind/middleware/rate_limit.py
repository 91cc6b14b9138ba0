"""Rate limiting for the public search endpoints."""
from __future__ import annotations

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from medifind.core.config import get_settings


def get_limiter() -> Limiter:
    """
    Create a limiter keyed on client IP.

    Storage is in-memory for a single development instance and Redis in
    production so every worker shares the same counters.
    """
    settings = get_settings()

    if settings.environment == "production":
        storage_uri = str(settings.redis_url)
    else:
        storage_uri = "memory://"

    return Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit_default],
        storage_uri=storage_uri,
        enabled=settings.rate_limit_enabled,
    )


__all__ = ["get_limiter", "RateLimitExceeded", "SlowAPIMiddleware", "_rate_limit_exceeded_handler"]
