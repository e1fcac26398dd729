"""Pydantic models for the Datto RMM client.

Frozen models so credentials and cached token state can only be replaced,
never edited in place.
"""

from __future__ import annotations

import base64
from typing import Annotated, Self

from pydantic import BaseModel, ConfigDict, Field, SecretStr


class Credentials(BaseModel):
    """API key and secret used for the client-credentials grant.

    Both values are secret strings, so ``repr()`` and log output show
    ``**********`` instead of the real values.
    """

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr
    api_secret: SecretStr

    def basic_auth(self) -> str:
        """Return the HTTP Basic credential, ``base64(api_key:api_secret)``."""
        raw = f"{self.api_key.get_secret_value()}:{self.api_secret.get_secret_value()}"
        return base64.b64encode(raw.encode("utf-8")).decode("ascii")


class TokenResponse(BaseModel):
    """OAuth 2.0 token response from the platform's token endpoint."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    access_token: str
    expires_in: Annotated[int, Field(ge=0)]


class TokenState(BaseModel):
    """A cached access token and the monotonic instant it expires at."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    expires_at: float

    @classmethod
    def from_response(cls, response: TokenResponse, *, now: float) -> Self:
        """Create TokenState from TokenResponse, anchored at ``now``."""
        return cls(
            access_token=response.access_token,
            expires_at=now + response.expires_in,
        )

    def is_fresh(self, now: float, buffer_seconds: float) -> bool:
        """Check the token stays valid for at least ``buffer_seconds``."""
        return self.expires_at > now + buffer_seconds

    def seconds_remaining(self, now: float) -> float:
        """Seconds until the token expires; negative once it has."""
        return self.expires_at - now

    def __repr__(self) -> str:
        return f"TokenState(access_token='**********', expires_at={self.expires_at!r})"
