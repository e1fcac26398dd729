"""Datto RMM API client."""

from .auth import BearerAuth
from .client import DattoClient
from .config import DattoConfig, TelemetryConfig
from .errors import (
    ApiError,
    AuthError,
    DattoError,
    ErrorCode,
    InvalidConfigError,
    PlatformParseError,
    TransportError,
)
from .models import Credentials, TokenResponse, TokenState
from .platforms import Platform
from .telemetry import configure_telemetry
from .token_cache import TokenCache

__all__ = [
    "ApiError",
    "AuthError",
    "BearerAuth",
    "Credentials",
    "DattoClient",
    "DattoConfig",
    "DattoError",
    "ErrorCode",
    "InvalidConfigError",
    "Platform",
    "PlatformParseError",
    "TelemetryConfig",
    "TokenCache",
    "TokenResponse",
    "TokenState",
    "TransportError",
    "configure_telemetry",
]

__version__ = "0.1.0"
