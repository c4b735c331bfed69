"""RequestCorrelator: critique requests over a one-way message channel.

The core cannot open network connections. Each attempt is posted to the
transport as a ``make-api-request`` message and parked in a table of pending
correlations keyed by a fresh id. The entry is settled exactly once, by
whichever comes first:

- ``handle_reply()`` with a matching ``api-response`` message
- the timeout timer armed at dispatch
- cancellation of the waiting task

Settling always pops the entry and completes its future in one synchronous
step on the event loop, so the loser of a reply/timeout race finds nothing to
do. A late reply is logged and dropped.

Retry wraps the whole dispatch cycle (see ``RequestState``): validation errors
and 4xx statuses end the request, everything else waits ``attempt * base``
seconds and dispatches again under a new id.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as ModelValidationError

from app.engine.config import CritiqueConfig
from app.engine.errors import CritiqueError, ErrorCode
from app.engine.payload import build_critique_request
from app.engine.validators import validate_api_key, validate_context, validate_design_info
from app.models.analysis import AnalysisRecord
from app.models.critique import Critique, CritiqueRequest
from app.models.messages import InboundReply, OutboundDispatch
from app.transport.channel import MessagePort

logger = logging.getLogger(__name__)


class RequestState(enum.Enum):
    BUILDING = "building"
    DISPATCHED = "dispatched"
    TIMED_OUT = "timed_out"
    RETRY_SCHEDULED = "retry_scheduled"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class PendingCorrelation:
    correlation_id: str
    future: asyncio.Future[Critique]
    created_at: float
    timer: asyncio.TimerHandle | None = None


@dataclass
class _RequestProgress:
    """Explicit state of one logical request across its attempts."""

    state: RequestState = RequestState.BUILDING
    attempt: int = 0
    delay: float = 0.0
    last_error: CritiqueError | None = None


def _new_correlation_id() -> str:
    return uuid.uuid4().hex


class RequestCorrelator:
    """Matches asynchronous transport replies back to waiting critique calls."""

    def __init__(
        self,
        port: MessagePort,
        config: CritiqueConfig | None = None,
        *,
        id_factory: Callable[[], str] = _new_correlation_id,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.port = port
        self.config = config or CritiqueConfig()
        self._id_factory = id_factory
        self._sleep = sleep
        self._pending: dict[str, PendingCorrelation] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_pending(self, correlation_id: str) -> bool:
        return correlation_id in self._pending

    async def get_critique(
        self,
        record: AnalysisRecord | Mapping[str, Any],
        credential: str,
        context: str = "",
    ) -> Critique:
        start = time.perf_counter()

        validate_api_key(credential, self.config)
        analysis = validate_design_info(record)
        validate_context(context, self.config)

        request = build_critique_request(analysis, context or "", self.config)
        logger.info(
            "Requesting critique (model=%s, max_tokens=%d, elements=%d)",
            request.model,
            request.max_tokens,
            analysis.count,
        )

        critique = await self._run_with_retry(request, credential)
        logger.info(
            "Critique received: %d chars in %.0fms",
            len(critique.content),
            (time.perf_counter() - start) * 1000,
        )
        return critique

    async def _run_with_retry(self, request: CritiqueRequest, credential: str) -> Critique:
        progress = _RequestProgress()
        attempts = self.config.retry_attempts

        while True:
            progress.attempt += 1
            self._transition(progress, RequestState.DISPATCHED)
            try:
                critique = await self._dispatch(request, credential)
            except CritiqueError as e:
                progress.last_error = e
                if e.code == ErrorCode.API_TIMEOUT:
                    self._transition(progress, RequestState.TIMED_OUT)

                if not e.retryable:
                    self._transition(progress, RequestState.FAILED)
                    logger.warning("Critique request failed (not retryable): %r", e)
                    raise

                if progress.attempt >= attempts:
                    self._transition(progress, RequestState.FAILED)
                    logger.error("Critique request failed after %d attempts: %r", attempts, e)
                    raise CritiqueError.request_failed(attempts, e) from e

                progress.delay = progress.attempt * self.config.retry_base_delay
                self._transition(progress, RequestState.RETRY_SCHEDULED)
                logger.warning(
                    "Critique request failed, retrying (%d/%d) in %.1fs: %s",
                    progress.attempt,
                    attempts,
                    progress.delay,
                    e.message,
                )
                await self._sleep(progress.delay)
                continue

            self._transition(progress, RequestState.SUCCEEDED)
            return critique

    @staticmethod
    def _transition(progress: _RequestProgress, state: RequestState) -> None:
        logger.debug(
            "Request state %s -> %s (attempt %d)",
            progress.state.name,
            state.name,
            progress.attempt,
        )
        progress.state = state

    async def _dispatch(self, request: CritiqueRequest, credential: str) -> Critique:
        """One attempt: register, arm the timer, post, wait."""
        loop = asyncio.get_running_loop()
        correlation_id = self._id_factory()
        if correlation_id in self._pending:
            raise CritiqueError.transport(
                f"Correlation id collision: {correlation_id}", ErrorCode.NETWORK_ERROR
            )

        pending = PendingCorrelation(
            correlation_id=correlation_id,
            future=loop.create_future(),
            created_at=time.monotonic(),
        )
        self._pending[correlation_id] = pending

        pending.timer = loop.call_later(self.config.request_timeout, self._expire, correlation_id)

        message = OutboundDispatch(
            correlation_id=correlation_id,
            payload=request,
            credential=credential,
            deadline=self.config.request_timeout,
        ).to_wire()
        try:
            self.port.post_message(message)
        except Exception as e:
            self._release(correlation_id)
            raise CritiqueError.transport(f"Failed to make API request: {e}") from e
        logger.debug("Dispatched %s", correlation_id)

        try:
            return await pending.future
        finally:
            # Task cancelled while waiting: release the entry ourselves
            if self._pending.get(correlation_id) is pending:
                self._release(correlation_id)

    def _release(self, correlation_id: str) -> PendingCorrelation | None:
        pending = self._pending.pop(correlation_id, None)
        if pending is not None and pending.timer is not None:
            pending.timer.cancel()
        return pending

    def _expire(self, correlation_id: str) -> None:
        pending = self._release(correlation_id)
        if pending is None or pending.future.done():
            return
        waited = time.monotonic() - pending.created_at
        logger.warning("Request %s timed out after %.1fs", correlation_id, waited)
        pending.future.set_exception(
            CritiqueError.transport("API request timed out", ErrorCode.API_TIMEOUT)
        )

    def handle_reply(self, message: Mapping[str, Any] | InboundReply) -> bool:
        """Settle the pending entry a reply addresses. False if nothing was settled."""
        try:
            reply = (
                message
                if isinstance(message, InboundReply)
                else InboundReply.model_validate(message)
            )
        except ModelValidationError as e:
            logger.warning("Ignoring malformed API response: %d invalid field(s)", e.error_count())
            return False

        pending = self._release(reply.correlation_id)
        if pending is None:
            logger.warning("Received API response for unknown request %s", reply.correlation_id)
            return False
        if pending.future.done():
            return False

        if reply.error is not None:
            err = reply.error
            pending.future.set_exception(
                CritiqueError.remote(
                    err.message or "API request failed",
                    err.code or ErrorCode.API_REQUEST_FAILED,
                    status_code=err.status_code,
                    response=err.response,
                )
            )
        else:
            result = reply.result
            pending.future.set_result(
                Critique(content=result.content, model=result.model, usage=result.usage)
            )
        return True

    def cancel_all(self) -> int:
        """Cancel every outstanding request (shutdown). Returns how many were pending."""
        ids = list(self._pending)
        for correlation_id in ids:
            pending = self._release(correlation_id)
            if pending is not None:
                pending.future.cancel()
        if ids:
            logger.info("Cancelled %d pending request(s)", len(ids))
        return len(ids)
