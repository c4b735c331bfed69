"""Input checks run before any analysis or dispatch work."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import ValidationError as ModelValidationError

from app.engine.config import CritiqueConfig
from app.engine.errors import CritiqueError, ErrorCode
from app.models.analysis import REQUIRED_FIELDS, AnalysisRecord


def validate_api_key(api_key: Any, config: CritiqueConfig) -> None:
    """Structural checks only; the key is never parsed or logged."""
    if not api_key or not isinstance(api_key, str):
        raise CritiqueError.validation(
            "API key is required and must be a string", ErrorCode.INVALID_API_KEY
        )
    if not api_key.strip():
        raise CritiqueError.validation("API key cannot be empty", ErrorCode.INVALID_API_KEY)
    if len(api_key) < config.api_key_min_length:
        raise CritiqueError.validation(
            "API key appears to be too short", ErrorCode.INVALID_API_KEY
        )
    if not api_key.startswith(config.api_key_prefix):
        raise CritiqueError.validation(
            f'API key should start with "{config.api_key_prefix}"', ErrorCode.INVALID_API_KEY
        )


def validate_selection(nodes: Any) -> None:
    if isinstance(nodes, (str, bytes)) or not isinstance(nodes, Sequence):
        raise CritiqueError.validation(
            "Design elements must be a sequence", ErrorCode.NO_ELEMENTS_SELECTED
        )
    if len(nodes) == 0:
        raise CritiqueError.no_elements()


def validate_context(context: Any, config: CritiqueConfig) -> None:
    if context is None or context == "":
        return
    if not isinstance(context, str):
        raise CritiqueError.validation("Context must be a string", ErrorCode.INVALID_RESPONSE)
    if len(context) > config.max_context_length:
        raise CritiqueError.validation(
            f"Context is too long ({len(context)} characters). "
            f"Maximum allowed is {config.max_context_length}",
            ErrorCode.INVALID_RESPONSE,
            length=len(context),
        )


def validate_design_info(design_info: Any) -> AnalysisRecord:
    """Check a record (or its wire form) for completeness and return it typed."""
    if isinstance(design_info, AnalysisRecord):
        return design_info
    if not isinstance(design_info, Mapping):
        raise CritiqueError.validation("Design info must be an object", ErrorCode.INVALID_RESPONSE)

    for field in REQUIRED_FIELDS:
        if field not in design_info:
            raise CritiqueError.validation(
                f"Design info missing required field: {field}",
                ErrorCode.INVALID_RESPONSE,
                field=field,
            )

    try:
        return AnalysisRecord.model_validate(design_info)
    except ModelValidationError as e:
        raise CritiqueError.validation(
            f"Design info is malformed: {e.error_count()} invalid field(s)",
            ErrorCode.INVALID_RESPONSE,
            errors=e.errors(include_url=False),
        ) from e
