"""Critique error taxonomy.

One exception type with an explicit ``kind`` discriminant instead of a class
hierarchy. Callers branch on ``err.kind`` / ``err.code``; the retry loop only
needs ``err.retryable``.
"""

from __future__ import annotations

import enum
from typing import Any


class ErrorKind(enum.Enum):
    VALIDATION = "validation"
    NO_ELEMENTS = "no_elements"
    TOO_MANY_ELEMENTS = "too_many_elements"
    TRANSPORT = "transport"
    REMOTE = "remote"
    REQUEST_FAILED = "request_failed"


class ErrorCode:
    INVALID_API_KEY = "INVALID_API_KEY"
    API_REQUEST_FAILED = "API_REQUEST_FAILED"
    NO_ELEMENTS_SELECTED = "NO_ELEMENTS_SELECTED"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    API_TIMEOUT = "API_TIMEOUT"


# Kinds that end a request no matter what status they carry
_TERMINAL_KINDS = {
    ErrorKind.VALIDATION,
    ErrorKind.NO_ELEMENTS,
    ErrorKind.TOO_MANY_ELEMENTS,
    ErrorKind.REQUEST_FAILED,
}


class CritiqueError(Exception):
    """Tagged error raised by the analyzer, validators and correlator."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        self.response = response

    @property
    def retryable(self) -> bool:
        if self.kind in _TERMINAL_KINDS:
            return False
        if self.status_code is not None and 400 <= self.status_code < 500:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
            "statusCode": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"CritiqueError(kind={self.kind.name}, code={self.code!r}, "
            f"status_code={self.status_code!r}, message={self.message!r})"
        )

    # --- constructors per kind ---

    @classmethod
    def validation(cls, message: str, code: str, **details: Any) -> CritiqueError:
        return cls(ErrorKind.VALIDATION, message, code, details=details)

    @classmethod
    def no_elements(cls, message: str = "Please select at least one design element") -> CritiqueError:
        return cls(ErrorKind.NO_ELEMENTS, message, ErrorCode.NO_ELEMENTS_SELECTED)

    @classmethod
    def too_many_elements(cls, limit: int) -> CritiqueError:
        return cls(
            ErrorKind.TOO_MANY_ELEMENTS,
            f"Too many elements selected (more than {limit}). Maximum allowed is {limit}",
            ErrorCode.ANALYSIS_FAILED,
            details={"limit": limit},
        )

    @classmethod
    def transport(cls, message: str, code: str = ErrorCode.NETWORK_ERROR) -> CritiqueError:
        return cls(ErrorKind.TRANSPORT, message, code)

    @classmethod
    def remote(
        cls,
        message: str,
        code: str = ErrorCode.API_REQUEST_FAILED,
        status_code: int | None = None,
        response: Any = None,
    ) -> CritiqueError:
        return cls(ErrorKind.REMOTE, message, code, status_code=status_code, response=response)

    @classmethod
    def request_failed(cls, attempts: int, last: CritiqueError | None) -> CritiqueError:
        return cls(
            ErrorKind.REQUEST_FAILED,
            f"API request failed after {attempts} attempts",
            ErrorCode.API_REQUEST_FAILED,
            status_code=last.status_code if last else None,
            details={"attempts": attempts, "last_error": last.to_dict() if last else None},
            response=last.response if last else None,
        )
