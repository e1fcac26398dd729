"""Error classes for the Datto RMM client.

Every error raised by the package derives from :class:`DattoError` and
carries a stable error code, so callers can branch on ``code`` and log
``to_dict()`` without parsing messages.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    import httpx


class ErrorCode(StrEnum):
    """Standardized error codes for the Datto RMM client."""

    # Authentication errors (1xxx)
    AUTH_FAILED = "AUTH_1001"

    # Validation errors (2xxx)
    INVALID_PLATFORM = "VAL_2001"
    INVALID_CONFIG = "VAL_2002"

    # Network errors (3xxx)
    TRANSPORT_ERROR = "NET_3001"
    TIMEOUT_ERROR = "NET_3002"

    # API errors (4xxx)
    API_ERROR = "API_4001"


class DattoError(Exception):
    """Base error for the Datto RMM client with structured error information."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str,
        *,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = str(code)
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error": self.message,
            "code": self.code,
            "status_code": self.status_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class TransportError(DattoError):
    """Connecting, sending, or decoding a response failed."""

    def __init__(
        self,
        message: str = "HTTP transport error",
        *,
        code: ErrorCode = ErrorCode.TRANSPORT_ERROR,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            message,
            code,
            details={"cause": str(cause)} if cause else None,
        )
        self.__cause__ = cause


class AuthError(DattoError):
    """The OAuth token endpoint answered with a non-success status."""

    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(
            f"OAuth token request failed: {status} - {body}",
            ErrorCode.AUTH_FAILED,
            status_code=status,
            details={"body": body} if body else None,
        )
        self.status = status
        self.body = body


class PlatformParseError(DattoError, ValueError):
    """An unrecognized platform name was supplied."""

    def __init__(self, value: str, valid_names: Sequence[str]) -> None:
        self.input = value
        self.valid_names = tuple(valid_names)
        super().__init__(
            f"unknown platform '{value}'. Valid platforms: {', '.join(self.valid_names)}",
            ErrorCode.INVALID_PLATFORM,
            details={"input": value, "valid_names": list(self.valid_names)},
        )


class InvalidConfigError(DattoError):
    """Invalid client configuration."""

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
    ) -> None:
        super().__init__(
            message,
            ErrorCode.INVALID_CONFIG,
            details={"field": field} if field else None,
        )


class ApiError(DattoError):
    """Error response from a Datto RMM API call.

    Raised by the generated API layer, never by the token handling in this
    package.
    """

    def __init__(self, status: int, message: str) -> None:
        super().__init__(
            f"API error: {status} - {message}",
            ErrorCode.API_ERROR,
            status_code=status,
        )
        self.status = status
        self.detail = message

    @classmethod
    def from_response(cls, response: httpx.Response) -> ApiError:
        """Build an ApiError from a failed API response.

        Prefers a ``message`` or ``error_description`` field from a JSON body
        and falls back to the raw text.
        """
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or body.get("error_description") or message)
        return cls(response.status_code, message)
