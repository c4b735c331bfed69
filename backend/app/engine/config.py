"""Critique engine configuration, fixed once at process start."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from app.config import Settings


@dataclass(frozen=True)
class CritiqueConfig:
    """Limits and policies shared by the analyzer and the correlator."""

    # Request payload
    model: str = "gpt-3.5-turbo"
    max_tokens: int = 1000
    temperature: float = 0.7

    # Correlation timeout, seconds
    request_timeout: float = 30.0

    # Linear backoff: attempt N waits N * retry_base_delay seconds
    retry_attempts: int = 3
    retry_base_delay: float = 1.0

    # Selection ceiling (total nodes, nested included)
    max_elements: int = 1000
    max_context_length: int = 10000

    # Credential format checks
    api_key_prefix: str = "sk-"
    api_key_min_length: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> CritiqueConfig:
        return cls(
            model=settings.model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            request_timeout=settings.request_timeout,
            retry_attempts=settings.retry_attempts,
            retry_base_delay=settings.retry_base_delay,
            max_elements=settings.max_elements,
            max_context_length=settings.max_context_length,
            api_key_prefix=settings.api_key_prefix,
            api_key_min_length=settings.api_key_min_length,
        )
