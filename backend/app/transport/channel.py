"""In-process message channel between the sandboxed core and the transport side.

Messages are one-way and fire-and-forget. Delivery is always scheduled on the
event loop (never synchronous with ``post_message``) and each message is
copied through JSON on the way, so the two ends never share objects.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

MessageHandler = Callable[[dict[str, Any]], None]


class MessagePort(Protocol):
    def post_message(self, message: dict[str, Any]) -> None: ...


class ChannelClosedError(RuntimeError):
    pass


class ChannelEnd:
    """One side of a ``LoopbackChannel``."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._peer: ChannelEnd | None = None
        self._handler: MessageHandler | None = None
        self.closed = False

    def on_message(self, handler: MessageHandler) -> None:
        self._handler = handler

    def post_message(self, message: dict[str, Any]) -> None:
        if self.closed or self._peer is None or self._peer.closed:
            raise ChannelClosedError(f"channel end '{self.name}' is closed")
        # Same constraint as a structured clone: plain JSON data only
        payload = json.loads(json.dumps(message))
        asyncio.get_running_loop().call_soon(self._peer._deliver, payload)

    def _deliver(self, message: dict[str, Any]) -> None:
        if self.closed:
            return
        if self._handler is None:
            logger.warning("No handler on '%s', dropped %s", self.name, message.get("type"))
            return
        try:
            self._handler(message)
        except Exception:
            logger.exception("Handler on '%s' failed for %s", self.name, message.get("type"))

    def close(self) -> None:
        self.closed = True
        self._handler = None


class LoopbackChannel:
    """A connected pair of channel ends: ``core`` and ``ui``."""

    def __init__(self) -> None:
        self.core = ChannelEnd("core")
        self.ui = ChannelEnd("ui")
        self.core._peer = self.ui
        self.ui._peer = self.core

    def close(self) -> None:
        self.core.close()
        self.ui.close()
