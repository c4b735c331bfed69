"""API response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str = ""
    version: str = "1.0.0"


class CritiqueProxyResponse(BaseModel):
    content: str
    model: str = ""
    usage: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str
    status_code: int | None = Field(default=None, alias="statusCode")
