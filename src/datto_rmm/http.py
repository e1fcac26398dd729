"""HTTP helpers for the Datto RMM client.

Builds the shared ``httpx.AsyncClient`` and performs the OAuth token
request, translating httpx failures into this package's error types.
Nothing here retries; every failure goes to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError as PydanticValidationError

from .errors import AuthError, ErrorCode, TransportError
from .models import TokenResponse
from .telemetry import trace_operation

if TYPE_CHECKING:
    from .models import Credentials

USER_AGENT = "datto-rmm/0.1.0 Python"

DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0

CLIENT_CREDENTIALS_BODY = "grant_type=client_credentials"


def create_async_http_client(
    base_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
) -> httpx.AsyncClient:
    """Create configured async HTTP client.

    Args:
        base_url: Base URL that relative request paths resolve against.
        timeout: Read, write and pool timeout in seconds.
        connect_timeout: Connect timeout in seconds.

    Returns:
        Configured httpx.AsyncClient.
    """
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(
            connect=connect_timeout,
            read=timeout,
            write=timeout,
            pool=timeout,
        ),
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        },
        follow_redirects=False,
    )


def _read_body(response: httpx.Response) -> str:
    """Best-effort response text; empty when it cannot be decoded."""
    try:
        return response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError, LookupError):
        return ""


async def request_token(
    client: httpx.AsyncClient,
    token_endpoint: str,
    credentials: Credentials,
) -> TokenResponse:
    """Run the client-credentials grant against ``token_endpoint``.

    Args:
        client: Transport to send the request with.
        token_endpoint: Absolute URL of the platform's token endpoint.
        credentials: API key and secret for HTTP Basic auth.

    Returns:
        Parsed token response.

    Raises:
        AuthError: The endpoint answered with a non-success status.
        TransportError: Connecting, sending or decoding failed.
    """
    headers = {
        "Authorization": f"Basic {credentials.basic_auth()}",
        "Content-Type": "application/x-www-form-urlencoded",
    }

    with trace_operation(
        "http_request",
        attributes={"http.method": "POST", "http.url": token_endpoint},
    ) as span:
        try:
            # auth=None: never route the grant through the transport's default auth
            response = await client.post(
                token_endpoint,
                headers=headers,
                content=CLIENT_CREDENTIALS_BODY,
                auth=None,
            )
        except httpx.TimeoutException as e:
            raise TransportError(
                f"Token request timed out: {e}",
                code=ErrorCode.TIMEOUT_ERROR,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Token request failed: {e}", cause=e) from e

        span.set_attribute("http.status_code", response.status_code)

        if not response.is_success:
            raise AuthError(response.status_code, _read_body(response))

        try:
            return TokenResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise TransportError(f"Invalid token response: {e}", cause=e) from e
