"""AnalysisRecord + context → CritiqueRequest. Pure and deterministic."""

from __future__ import annotations

from app.engine.config import CritiqueConfig
from app.llm.prompts import (
    CRITIQUE_SYSTEM_PROMPT,
    CRITIQUE_USER_TEMPLATE,
    NO_COLORS,
    NO_CONTEXT,
    NO_FONTS,
    NO_TEXT,
)
from app.models.analysis import AnalysisRecord
from app.models.critique import ChatMessage, CritiqueRequest


def build_user_prompt(record: AnalysisRecord, context: str = "") -> str:
    if record.text_content:
        text = '"' + '", "'.join(record.text_content) + '"'
    else:
        text = NO_TEXT

    breakdown = "\n".join(
        f"{i}. {el.name} ({el.type})" for i, el in enumerate(record.elements, start=1)
    )

    return CRITIQUE_USER_TEMPLATE.format(
        count=record.count,
        types=", ".join(record.types),
        colors=", ".join(record.colors) if record.colors else NO_COLORS,
        fonts=", ".join(record.fonts) if record.fonts else NO_FONTS,
        text=text,
        width=record.dimensions.total_width,
        height=record.dimensions.total_height,
        breakdown=breakdown,
        context=context or NO_CONTEXT,
    )


def build_critique_request(
    record: AnalysisRecord,
    context: str,
    config: CritiqueConfig,
) -> CritiqueRequest:
    return CritiqueRequest(
        model=config.model,
        messages=(
            ChatMessage(role="system", content=CRITIQUE_SYSTEM_PROMPT),
            ChatMessage(role="user", content=build_user_prompt(record, context)),
        ),
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
