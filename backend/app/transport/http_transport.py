"""HTTP transport: performs critique requests on behalf of the core.

Listens on the UI end of the channel. ``make-api-request`` messages become a
POST to the critique proxy; the outcome goes back as an ``api-response``
message addressed by the same correlation id. Every other message is handed
to ``on_event`` (UI rendering, CLI output).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from app.engine.errors import ErrorCode
from app.models.messages import InboundReply, MessageType, ReplyError, ReplyResult
from app.transport.channel import MessagePort

logger = logging.getLogger(__name__)

CRITIQUE_PATH = "/api/critique"


class HttpTransport:
    def __init__(
        self,
        port: MessagePort,
        proxy_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        on_event: Callable[[dict[str, Any]], None] | None = None,
    ) -> None:
        self.port = port
        self.endpoint = proxy_url.rstrip("/") + CRITIQUE_PATH
        self.on_event = on_event
        self._client = client
        self._owns_client = client is None
        self._tasks: set[asyncio.Task[None]] = set()

    def handle_message(self, message: dict[str, Any]) -> None:
        if message.get("type") == MessageType.MAKE_API_REQUEST.value:
            task = asyncio.get_running_loop().create_task(self._perform(message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        elif self.on_event is not None:
            self.on_event(message)

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def _perform(self, message: Mapping[str, Any]) -> None:
        correlation_id = str(message.get("correlationId", ""))
        try:
            reply = await self._request(correlation_id, message)
        except Exception:
            # A dispatch is always answered
            logger.exception("Critique request %s produced no usable reply", correlation_id)
            reply = _error_reply(
                correlation_id, "Invalid response from critique service", ErrorCode.INVALID_RESPONSE
            )
        try:
            self.port.post_message(reply.to_wire())
        except Exception:
            logger.exception("Failed to post reply for %s", correlation_id)

    async def _request(self, correlation_id: str, message: Mapping[str, Any]) -> InboundReply:
        deadline = float(message.get("deadline") or 30.0)
        headers = {"Content-Type": "application/json"}
        credential = message.get("credential")
        if credential:
            headers["Authorization"] = f"Bearer {credential}"

        try:
            response = await self._get_client().post(
                self.endpoint,
                json=message.get("payload"),
                headers=headers,
                timeout=deadline,
            )
        except httpx.TimeoutException:
            logger.warning("Critique request %s timed out after %.1fs", correlation_id, deadline)
            return _error_reply(correlation_id, "Request timed out", ErrorCode.NETWORK_ERROR)
        except httpx.HTTPError as e:
            logger.warning("Critique request %s failed: %s", correlation_id, e)
            return _error_reply(correlation_id, f"Network error: {e}", ErrorCode.NETWORK_ERROR)

        body = _json_or_text(response)
        if response.is_success:
            content = body.get("content") if isinstance(body, dict) else None
            if not isinstance(content, str):
                return _error_reply(
                    correlation_id, "Invalid response from critique service", ErrorCode.INVALID_RESPONSE
                )
            return InboundReply(
                correlation_id=correlation_id,
                result=ReplyResult(content=content, usage=body.get("usage"), model=body.get("model")),
            )

        logger.warning("Critique request %s returned HTTP %d", correlation_id, response.status_code)
        message_text = f"HTTP {response.status_code}"
        code = ErrorCode.API_REQUEST_FAILED
        if isinstance(body, dict):
            message_text = body.get("error") or message_text
            code = body.get("code") or code
        return _error_reply(
            correlation_id, message_text, code, status_code=response.status_code, response=body
        )


def _json_or_text(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_reply(
    correlation_id: str,
    message: str,
    code: str,
    *,
    status_code: int | None = None,
    response: Any = None,
) -> InboundReply:
    return InboundReply(
        correlation_id=correlation_id,
        error=ReplyError(message=message, code=code, status_code=status_code, response=response),
    )
