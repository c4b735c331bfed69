"""FastAPI dependency injection."""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings, settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)

CRITIQUE_RATE_LIMIT = f"{settings.rate_limit_requests} per {settings.rate_limit_window}"


def get_settings() -> Settings:
    return settings
