"""httpx authentication hook that attaches the Datto RMM bearer token."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .errors import ApiError
from .telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable, Generator


class BearerAuth(httpx.Auth):
    """Sets ``Authorization: Bearer <token>`` on every request.

    The token comes from ``token_provider``, normally
    :meth:`DattoClient.ensure_token`, so each request reuses the cached
    token or triggers a refresh. A 401 answer is reported to
    ``on_auth_error`` and the response is returned unchanged.

    Example:
        >>> response = await client.transport.get("/v2/account", auth=client.auth)
    """

    def __init__(
        self,
        token_provider: Callable[[], Awaitable[str]],
        *,
        on_auth_error: Callable[[ApiError], None] | None = None,
    ) -> None:
        self._token_provider = token_provider
        self._on_auth_error = on_auth_error

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        msg = "BearerAuth requires an httpx.AsyncClient"
        raise RuntimeError(msg)

    async def async_auth_flow(
        self, request: httpx.Request
    ) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self._token_provider()
        request.headers["Authorization"] = f"Bearer {token}"

        response = yield request

        if response.status_code == 401:
            error = ApiError(401, "Authentication failed - token may be expired")
            get_logger().warning("api_unauthorized", url=str(request.url))
            if self._on_auth_error is not None:
                self._on_auth_error(error)
