"""API request models."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.models.critique import ChatMessage


class CritiqueProxyRequest(BaseModel):
    model: str | None = Field(default=None, description="Model id (server default if omitted)")
    messages: list[ChatMessage] | None = Field(
        default=None,
        description="Chat messages (role/content pairs), system prompt first",
    )
    max_tokens: int | None = Field(default=None, description="Completion budget, capped server-side")
    temperature: float | None = Field(default=None, description="Sampling temperature")
