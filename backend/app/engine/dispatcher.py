"""Message dispatcher: routes UI/transport messages to the analyzer and correlator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as ModelValidationError

from app.engine.analyzer import TreeAnalyzer
from app.engine.config import CritiqueConfig
from app.engine.correlator import RequestCorrelator
from app.engine.errors import CritiqueError, ErrorCode, ErrorKind
from app.engine.host import SelectionHost
from app.models.analysis import AnalysisRecord
from app.models.messages import CritiqueAsk, MessageType, ui_message
from app.transport.channel import MessagePort

logger = logging.getLogger(__name__)

_USER_MESSAGES = {
    ErrorCode.INVALID_API_KEY: "Please check your API key and try again",
    ErrorCode.API_REQUEST_FAILED: (
        "Failed to get critique. Please check your internet connection and try again"
    ),
    ErrorCode.NO_ELEMENTS_SELECTED: "Please select some design elements first",
}


def user_message(error: CritiqueError) -> str:
    """One human-readable line for a terminal critique error."""
    return _USER_MESSAGES.get(error.code, error.message)


class MessageDispatcher:
    """Handles every inbound message; never lets an exception escape a handler."""

    def __init__(
        self,
        host: SelectionHost,
        port: MessagePort,
        analyzer: TreeAnalyzer,
        correlator: RequestCorrelator,
    ) -> None:
        self.host = host
        self.port = port
        self.analyzer = analyzer
        self.correlator = correlator
        self.last_record: AnalysisRecord | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    def handle_message(self, message: Mapping[str, Any]) -> None:
        msg_type = message.get("type") if isinstance(message, Mapping) else None
        logger.debug("Received message %s", msg_type)
        try:
            if msg_type == MessageType.GET_SELECTION.value:
                self._handle_get_selection()
            elif msg_type == MessageType.GET_CRITIQUE.value:
                self._handle_get_critique(message)
            elif msg_type == MessageType.API_RESPONSE.value:
                self.correlator.handle_reply(message)
            elif msg_type == MessageType.CLOSE.value:
                self._handle_close()
            else:
                logger.warning("Unknown message type: %s", msg_type)
                self._send_error(f"Unknown message type: {msg_type}")
        except Exception as e:
            logger.exception("Error in message handler")
            self._send_error(f"Plugin error: {e}")

    def initialize(self) -> None:
        """Analyze the selection present at startup and announce readiness."""
        try:
            record = self._analyze_selection()
        except CritiqueError as e:
            logger.error("Failed to initialize: %s", e.message)
            self._send_error(f"Initialization failed: {e.message}")
            return
        logger.info("Plugin initialized with %d element(s)", record.count)
        self._send(MessageType.PLUGIN_LOADED, record.to_wire())

    def handle_selection_change(self) -> None:
        try:
            record = self._analyze_selection()
        except CritiqueError as e:
            if e.kind is ErrorKind.NO_ELEMENTS:
                logger.debug("Selection cleared")
            else:
                logger.error("Error handling selection change: %s", e.message)
            return
        self._send(MessageType.SELECTION_UPDATED, record.to_wire())

    async def wait_idle(self) -> None:
        """Wait for in-flight critique tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        self.correlator.cancel_all()
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()

    # --- handlers ---

    def _analyze_selection(self) -> AnalysisRecord:
        selection = self.host.current_selection()
        record = self.analyzer.analyze(selection)
        self.last_record = record
        return record

    def _handle_get_selection(self) -> None:
        try:
            record = self._analyze_selection()
        except CritiqueError as e:
            logger.error("Error processing selection: %s", e.message)
            self._send_error(f"Error processing selection: {e.message}")
            return
        self._send(MessageType.SELECTION_UPDATED, record.to_wire())

    def _handle_get_critique(self, message: Mapping[str, Any]) -> None:
        try:
            ask = CritiqueAsk.model_validate(message)
        except ModelValidationError as e:
            self._send_error(f"Error getting critique: malformed request ({e.error_count()} error(s))")
            return

        design_info = ask.design_info
        if not design_info or design_info.get("count") == 0:
            self._send_error("Error getting critique: No design elements selected for critique")
            return
        if not ask.prompt.api_key:
            self._send_error("Error getting critique: API key is required")
            return

        logger.info(
            "Starting critique request (elements=%s, has_context=%s)",
            design_info.get("count"),
            bool(ask.prompt.context),
        )
        task = asyncio.get_running_loop().create_task(
            self._run_critique(design_info, ask.prompt.api_key, ask.prompt.context)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_critique(self, design_info: Mapping[str, Any], api_key: str, context: str) -> None:
        try:
            critique = await self.correlator.get_critique(design_info, api_key, context)
        except CritiqueError as e:
            logger.error("Error getting critique: %r", e)
            self._send_error(user_message(e))
            return
        except Exception as e:
            logger.exception("Unexpected failure getting critique")
            self._send_error(f"Error getting critique: {e}")
            return
        self._send(MessageType.CRITIQUE_RECEIVED, critique.content)

    def _handle_close(self) -> None:
        logger.info("Closing plugin")
        self.correlator.cancel_all()
        self.host.close()

    # --- outbound ---

    def _send(self, msg_type: MessageType, data: Any) -> None:
        try:
            self.port.post_message(ui_message(msg_type, data))
        except Exception:
            logger.exception("Failed to send %s to UI", msg_type.value)

    def _send_error(self, message: str) -> None:
        self._send(MessageType.ERROR, message)


def create_dispatcher(
    host: SelectionHost,
    port: MessagePort,
    config: CritiqueConfig | None = None,
) -> MessageDispatcher:
    config = config or CritiqueConfig()
    return MessageDispatcher(
        host=host,
        port=port,
        analyzer=TreeAnalyzer(config),
        correlator=RequestCorrelator(port, config),
    )
