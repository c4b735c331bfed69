"""LangChain chat model wrapper used by the critique proxy."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from app.config import settings
from app.llm.model_router import get_provider_for_model

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """The language-model provider rejected or failed the call."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass
class ChatCompletion:
    content: str
    model: str
    usage: dict[str, Any] = field(default_factory=dict)


def _build_llm(model: str, api_key: str, max_tokens: int, temperature: float):
    # Provider SDK retries are disabled: the core owns the retry policy
    if get_provider_for_model(model) == "anthropic":
        from langchain_anthropic import ChatAnthropic

        return ChatAnthropic(
            model=model,
            api_key=api_key,
            max_tokens=max_tokens,
            temperature=temperature,
            timeout=settings.upstream_timeout,
            max_retries=0,
        )

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=model,
        api_key=api_key,
        max_tokens=max_tokens,
        temperature=temperature,
        timeout=settings.upstream_timeout,
        max_retries=0,
    )


def _to_langchain(messages: Sequence[dict[str, str]]) -> list:
    from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

    converted: list = []
    for msg in messages:
        role = msg.get("role")
        if role == "system":
            converted.append(SystemMessage(content=msg["content"]))
        elif role == "assistant":
            converted.append(AIMessage(content=msg["content"]))
        else:
            converted.append(HumanMessage(content=msg["content"]))
    return converted


async def get_chat_completion(
    messages: Sequence[dict[str, str]],
    model: str,
    api_key: str,
    max_tokens: int,
    temperature: float,
) -> ChatCompletion:
    """Run one chat completion. Provider errors surface as UpstreamError."""
    llm = _build_llm(model, api_key, max_tokens, temperature)
    try:
        response = await llm.ainvoke(_to_langchain(messages))
    except Exception as e:
        # Both provider SDKs put the HTTP status on their status errors
        status = getattr(e, "status_code", None)
        logger.warning("Upstream %s call failed (status=%s): %s", model, status, e)
        raise UpstreamError(str(e), status_code=status) from e

    metadata = response.response_metadata or {}
    usage = dict(response.usage_metadata or {})
    return ChatCompletion(
        content=str(response.content) if response.content else "",
        model=metadata.get("model_name") or metadata.get("model") or model,
        usage=usage,
    )
