"""Messages exchanged between the core, the UI and the transport."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field, model_validator

from app.models.base import WireModel
from app.models.critique import CritiqueRequest


class MessageType(str, enum.Enum):
    # core → UI
    PLUGIN_LOADED = "plugin-loaded"
    SELECTION_UPDATED = "selection-updated"
    CRITIQUE_RECEIVED = "critique-received"
    ERROR = "error"
    # UI → core
    GET_SELECTION = "get-selection"
    GET_CRITIQUE = "get-critique"
    CLOSE = "close"
    # core ↔ transport
    MAKE_API_REQUEST = "make-api-request"
    API_RESPONSE = "api-response"


class OutboundDispatch(WireModel):
    """One critique attempt handed to the transport. Deadline is in seconds."""

    type: MessageType = MessageType.MAKE_API_REQUEST
    correlation_id: str
    payload: CritiqueRequest
    credential: str
    deadline: float


class ReplyResult(WireModel):
    content: str
    usage: dict[str, Any] | None = None
    model: str | None = None


class ReplyError(WireModel):
    message: str = "API request failed"
    code: str = "API_REQUEST_FAILED"
    status_code: int | None = None
    response: Any = None


class InboundReply(WireModel):
    type: MessageType = MessageType.API_RESPONSE
    correlation_id: str
    result: ReplyResult | None = None
    error: ReplyError | None = None

    @model_validator(mode="after")
    def _exactly_one_outcome(self) -> InboundReply:
        if (self.result is None) == (self.error is None):
            raise ValueError("reply must carry exactly one of 'result' or 'error'")
        return self


def ui_message(type_: MessageType, data: Any = None) -> dict[str, Any]:
    """Envelope for messages addressed to the UI."""
    return {"type": type_.value, "data": data}


class CritiquePrompt(WireModel):
    api_key: str = ""
    context: str = ""


class CritiqueAsk(WireModel):
    """Inbound ``get-critique`` message from the UI."""

    type: MessageType = MessageType.GET_CRITIQUE
    design_info: dict[str, Any] | None = None
    prompt: CritiquePrompt = Field(default_factory=CritiquePrompt)
