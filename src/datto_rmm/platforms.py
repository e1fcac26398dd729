"""Datto RMM platform registry.

The Datto RMM API is hosted on several regional platforms that all share
the same API schema. A platform decides both the API base URL and the
OAuth token endpoint.
"""

from __future__ import annotations

from enum import Enum

from .errors import PlatformParseError

TOKEN_PATH = "/public/oauth/token"


class Platform(Enum):
    """Datto RMM platform identifiers."""

    PINOTAGE = "pinotage"
    MERLOT = "merlot"
    CONCORD = "concord"
    VIDAL = "vidal"
    ZINFANDEL = "zinfandel"
    SYRAH = "syrah"

    def __str__(self) -> str:
        return self.value

    @property
    def base_url(self) -> str:
        """Base API URL for this platform."""
        return _BASE_URLS[self]

    @property
    def token_endpoint(self) -> str:
        """OAuth token endpoint for this platform."""
        return f"{self.base_url}{TOKEN_PATH}"

    @classmethod
    def all(cls) -> tuple[Platform, ...]:
        """Every platform, in declaration order."""
        return tuple(cls)

    @classmethod
    def valid_names(cls) -> tuple[str, ...]:
        """Canonical names of every platform, in declaration order."""
        return tuple(p.value for p in cls)

    @classmethod
    def parse(cls, value: str) -> Platform:
        """Parse a platform name, ignoring case.

        Raises:
            PlatformParseError: If ``value`` names no known platform.
        """
        try:
            return cls(value.lower())
        except ValueError:
            raise PlatformParseError(value, cls.valid_names()) from None


_BASE_URLS: dict[Platform, str] = {
    Platform.PINOTAGE: "https://pinotage-api.centrastage.net/api",
    Platform.MERLOT: "https://merlot-api.centrastage.net/api",
    Platform.CONCORD: "https://concord-api.centrastage.net/api",
    Platform.VIDAL: "https://vidal-api.centrastage.net/api",
    Platform.ZINFANDEL: "https://zinfandel-api.centrastage.net/api",
    Platform.SYRAH: "https://syrah-api.centrastage.net/api",
}
