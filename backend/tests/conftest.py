"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from app.engine.config import CritiqueConfig


# Selection exports as the host delivers them (camelCase keys)

TEXT_NODE = {
    "type": "TEXT",
    "name": "Greeting",
    "id": "1:1",
    "characters": "Hello",
    "fontName": {"family": "Inter", "style": "Regular"},
    "width": 100,
    "height": 20,
    "fills": [{"type": "SOLID", "color": {"r": 0, "g": 0, "b": 1}}],
}

# Card > (Title, Actions > (Button, Label)); pre-order: Card, Title, Actions, Button, Label
FRAME_TREE = {
    "type": "FRAME",
    "name": "Card",
    "id": "2:1",
    "width": 320,
    "height": 200,
    "fills": [{"type": "SOLID", "color": {"r": 1, "g": 1, "b": 1}}],
    "children": [
        {
            "type": "TEXT",
            "name": "Title",
            "id": "2:2",
            "characters": "Welcome",
            "fontName": {"family": "Inter", "style": "Bold"},
            "width": 200,
            "height": 32,
            "fills": [{"type": "SOLID", "color": {"r": 0, "g": 0, "b": 0}}],
        },
        {
            "type": "GROUP",
            "name": "Actions",
            "id": "2:3",
            "children": [
                {
                    "type": "RECTANGLE",
                    "name": "Button",
                    "id": "2:4",
                    "width": 120,
                    "height": 40,
                    "fills": [{"type": "SOLID", "color": {"r": 0, "g": 0.5, "b": 1}}],
                    "strokes": [{"type": "SOLID", "color": {"r": 0, "g": 0, "b": 0}}],
                },
                {
                    "type": "TEXT",
                    "name": "Label",
                    "id": "2:5",
                    "characters": "Sign up",
                    "fontName": {"family": "Inter", "style": "Bold"},
                    "width": 60.4,
                    "height": 16.4,
                },
            ],
        },
    ],
}

GRADIENT_NODE = {
    "type": "RECTANGLE",
    "name": "Backdrop",
    "id": "3:1",
    "width": 50,
    "height": 50,
    "fills": [
        {
            "type": "GRADIENT_LINEAR",
            "gradientStops": [
                {"position": 0, "color": {"r": 1, "g": 0, "b": 0, "a": 1}},
                {"position": 1, "color": {"r": 0, "g": 0, "b": 1, "a": 1}},
            ],
        }
    ],
    "strokes": [{"type": "IMAGE", "imageHash": "abc123"}],
}

VALID_KEY = "sk-test-1234567890"


def ok_reply(content: str = "Looks good", **extra: Any) -> dict[str, Any]:
    return {"type": "api-response", "result": {"content": content, **extra}}


def error_reply(
    status: int | None, code: str = "API_REQUEST_FAILED", message: str = ""
) -> dict[str, Any]:
    return {
        "type": "api-response",
        "error": {"message": message or f"HTTP {status}", "code": code, "statusCode": status},
    }


class FakePort:
    """Records posted messages and answers dispatches from a script.

    Each ``make-api-request`` pops the next scripted reply; ``None`` means the
    request is never answered. Replies are delivered on the next loop turn.
    """

    def __init__(self, replies: list[dict[str, Any] | None] | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.replies = list(replies or [])
        self.target = None
        self.fail_with: Exception | None = None

    def post_message(self, message: dict[str, Any]) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(message)
        if message.get("type") != "make-api-request" or self.target is None or not self.replies:
            return
        reply = self.replies.pop(0)
        if reply is not None:
            reply = {**reply, "correlationId": message["correlationId"]}
            asyncio.get_running_loop().call_soon(self.target, reply)

    @property
    def dispatches(self) -> list[dict[str, Any]]:
        return [m for m in self.sent if m.get("type") == "make-api-request"]


class SleepRecorder:
    """Stands in for asyncio.sleep in retry tests."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def config() -> CritiqueConfig:
    return CritiqueConfig(request_timeout=0.05)


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()
