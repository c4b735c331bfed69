"""Critique request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["system", "user", "assistant"]
    content: str


class CritiqueRequest(BaseModel):
    """Chat-completion style request. Field names match the proxy contract."""

    model_config = ConfigDict(frozen=True)

    model: str
    messages: tuple[ChatMessage, ...]
    max_tokens: int
    temperature: float

    def to_json(self) -> str:
        """Canonical serialization: equal requests give identical bytes."""
        return self.model_dump_json()


class Critique(BaseModel):
    content: str
    model: str | None = None
    usage: dict[str, Any] | None = None
