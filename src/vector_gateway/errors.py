"""Error types shared by the gateway, backends and query handler.

Every failure leaving a backend is one of these tagged errors so callers can
branch on ``code`` instead of parsing SDK-specific exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-checkable error kinds."""

    CONFIGURATION = "configuration_error"
    AUTHENTICATION = "authentication_error"
    CONNECTIVITY = "connectivity_error"
    BACKEND = "backend_error"
    INVALID_INPUT = "invalid_input"


class SearchGatewayError(Exception):
    """Base exception for all gateway errors.

    Args:
        message: Human-readable description
        context: Optional diagnostic context (collection, backend, ...)
    """

    code: ErrorCode = ErrorCode.BACKEND

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "context": self.context}


class ConfigurationError(SearchGatewayError):
    """A required endpoint or credential is missing."""

    code = ErrorCode.CONFIGURATION


class AuthenticationError(SearchGatewayError):
    """The backend rejected the configured credentials."""

    code = ErrorCode.AUTHENTICATION


class ConnectivityError(SearchGatewayError):
    """The backend is unreachable or timed out."""

    code = ErrorCode.CONNECTIVITY


class BackendError(SearchGatewayError):
    """Any other backend-side failure (index state, bad request, odd response)."""

    code = ErrorCode.BACKEND


class InvalidInputError(SearchGatewayError):
    """The caller supplied a missing or malformed argument."""

    code = ErrorCode.INVALID_INPUT
