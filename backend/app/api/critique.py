"""POST /api/critique: forward a critique request to the language model."""

import logging
import time

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from app.config import Settings
from app.dependencies import CRITIQUE_RATE_LIMIT, get_settings, limiter
from app.llm.client import UpstreamError, get_chat_completion
from app.llm.model_router import get_provider_for_model
from app.models.requests import CritiqueProxyRequest
from app.models.responses import CritiqueProxyResponse, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def upstream_error_message(status: int | None) -> str:
    if status == 429:
        return "API rate limit exceeded. Please try again in a few minutes."
    if status == 401:
        return "Authentication failed. Please contact support."
    if status is None or status >= 500:
        return "AI service is temporarily unavailable. Please try again later."
    return "Failed to get design critique"


def _error(status: int, message: str, code: str, upstream_status: int | None = None) -> JSONResponse:
    body = ErrorResponse(error=message, code=code, status_code=upstream_status)
    return JSONResponse(
        status_code=status,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


def _bearer(authorization: str | None) -> str | None:
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


@router.post("/critique", response_model=CritiqueProxyResponse)
@limiter.limit(CRITIQUE_RATE_LIMIT)
async def critique(
    request: Request,
    req: CritiqueProxyRequest,
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_settings),
):
    if not req.messages:
        return _error(400, "Invalid request format", "INVALID_REQUEST")

    model = req.model or settings.model
    provider = get_provider_for_model(model)
    server_key = settings.anthropic_api_key if provider == "anthropic" else settings.openai_api_key
    api_key = server_key or _bearer(authorization)
    if not api_key:
        logger.error("No %s API key configured and none supplied", provider)
        return _error(500, "Server configuration error", "SERVER_CONFIG_ERROR")

    start = time.perf_counter()
    try:
        completion = await get_chat_completion(
            messages=[m.model_dump() for m in req.messages],
            model=model,
            api_key=api_key,
            max_tokens=min(req.max_tokens or settings.max_tokens, settings.max_tokens_cap),
            temperature=req.temperature if req.temperature is not None else settings.temperature,
        )
    except UpstreamError as e:
        status = e.status_code or 503
        return _error(status, upstream_error_message(e.status_code), "OPENAI_API_ERROR", status)
    except Exception:
        logger.exception("Critique proxy failed")
        return _error(500, "Internal server error", "SERVER_ERROR")

    if not completion.content:
        return _error(500, "Invalid response from AI service", "INVALID_RESPONSE")

    logger.info(
        "Critique completed by %s in %.0fms",
        completion.model,
        (time.perf_counter() - start) * 1000,
    )
    return CritiqueProxyResponse(
        content=completion.content,
        model=completion.model,
        usage=completion.usage,
    )
