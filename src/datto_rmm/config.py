"""Configuration for the Datto RMM client.

Uses Pydantic v2 for validation. Every model is frozen; derive a changed
copy with :meth:`DattoConfig.with_overrides`.
"""

from __future__ import annotations

import os
from typing import Annotated, Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
)

from .errors import InvalidConfigError
from .models import Credentials
from .platforms import Platform

DEFAULT_PLATFORM = Platform.MERLOT


class TelemetryConfig(BaseModel):
    """Logging and tracing configuration."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    service_name: str = "datto-rmm"
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Unsupported log level: {v}"
            raise ValueError(msg)
        return level


class DattoConfig(BaseModel):
    """Main configuration for the Datto RMM client."""

    model_config = ConfigDict(frozen=True, validate_default=True)

    # Required
    api_key: SecretStr
    api_secret: SecretStr

    platform: Platform = DEFAULT_PLATFORM

    # HTTP settings
    timeout: Annotated[float, Field(gt=0, le=300)] = 30.0
    connect_timeout: Annotated[float, Field(gt=0, le=60)] = 10.0

    # Refresh tokens this many seconds before they expire
    token_buffer: Annotated[int, Field(ge=0)] = 300

    # Process-wide; applied only by configure_telemetry(config.telemetry)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)

    @field_validator("api_key", "api_secret")
    @classmethod
    def validate_not_empty(cls, v: SecretStr) -> SecretStr:
        """Reject empty credentials."""
        if not v.get_secret_value():
            msg = "must not be empty"
            raise ValueError(msg)
        return v

    @field_validator("platform", mode="before")
    @classmethod
    def parse_platform(cls, v: Any) -> Any:
        """Accept platform names in any case."""
        if isinstance(v, str):
            return Platform.parse(v)
        return v

    @property
    def credentials(self) -> Credentials:
        """Credentials for the client-credentials grant."""
        return Credentials(api_key=self.api_key, api_secret=self.api_secret)

    @property
    def base_url(self) -> str:
        """Base API URL of the configured platform."""
        return self.platform.base_url

    def with_overrides(self, **kwargs: Any) -> Self:
        """Create new config with overridden values."""
        data = self.model_dump()
        data.update(kwargs)
        return self.__class__(**data)

    @classmethod
    def from_env(cls, prefix: str = "DATTO_") -> Self:
        """Create config from environment variables.

        Reads ``{prefix}API_KEY`` and ``{prefix}API_SECRET`` (required),
        ``{prefix}PLATFORM`` (default ``merlot``) and ``{prefix}TIMEOUT``.

        Raises:
            InvalidConfigError: If a required variable is missing.
            PlatformParseError: If the platform name is unknown.
        """

        def get_env(key: str, default: Any = None) -> Any:
            return os.environ.get(f"{prefix}{key}", default)

        api_key = get_env("API_KEY")
        if not api_key:
            msg = f"{prefix}API_KEY environment variable is required"
            raise InvalidConfigError(msg, field="api_key")

        api_secret = get_env("API_SECRET")
        if not api_secret:
            msg = f"{prefix}API_SECRET environment variable is required"
            raise InvalidConfigError(msg, field="api_secret")

        platform_name = get_env("PLATFORM")
        platform = Platform.parse(platform_name) if platform_name else DEFAULT_PLATFORM

        timeout_value = get_env("TIMEOUT", "30.0")
        try:
            return cls(
                api_key=api_key,
                api_secret=api_secret,
                platform=platform,
                timeout=float(timeout_value),
            )
        except ValueError as e:
            msg = f"{prefix}TIMEOUT must be a number in (0, 300], got {timeout_value!r}"
            raise InvalidConfigError(msg, field="timeout") from e
