"""Authenticated async client for the Datto RMM REST API.

:class:`DattoClient` owns the HTTP transport, the credentials, the chosen
platform and the token cache. It fetches a token while it is being created,
so a client that exists has already authenticated once.

Usage
-----

.. code-block:: python

    from datto_rmm import Credentials, DattoClient, Platform

    async with await DattoClient.create(
        Platform.MERLOT,
        Credentials(api_key="key", api_secret="secret"),
    ) as client:
        response = await client.transport.get("/v2/account", auth=client.auth)

The generated API layer can instead call :meth:`DattoClient.ensure_token`
and attach the ``Authorization: Bearer`` header itself.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from .auth import BearerAuth
from .http import DEFAULT_CONNECT_TIMEOUT, DEFAULT_TIMEOUT, create_async_http_client
from .telemetry import get_logger, trace_operation
from .token_cache import DEFAULT_EXPIRY_BUFFER, TokenCache

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from .config import DattoConfig
    from .errors import ApiError
    from .models import Credentials
    from .platforms import Platform


class DattoClient:
    """Datto RMM API client with a shared, lazily refreshed access token.

    Build instances with :meth:`create` or :meth:`from_config`; both fail
    instead of returning a client that could not authenticate.
    """

    def __init__(
        self,
        platform: Platform,
        credentials: Credentials,
        http: httpx.AsyncClient,
        *,
        token_buffer: float = DEFAULT_EXPIRY_BUFFER,
        owns_http: bool = True,
    ) -> None:
        self._platform = platform
        self._credentials = credentials
        self._http = http
        self._owns_http = owns_http
        self._tokens = TokenCache(
            http,
            platform,
            credentials,
            buffer_seconds=token_buffer,
        )

    @classmethod
    async def create(
        cls,
        platform: Platform,
        credentials: Credentials,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        token_buffer: float = DEFAULT_EXPIRY_BUFFER,
        http_client: httpx.AsyncClient | None = None,
    ) -> Self:
        """Create a client and fetch its first access token.

        Args:
            platform: Platform to connect to.
            credentials: API key and secret.
            timeout: Request timeout in seconds, applied to token requests too.
            connect_timeout: Connect timeout in seconds.
            token_buffer: Refresh tokens this many seconds before expiry.
            http_client: Transport to use instead of creating one. The caller
                keeps ownership and must close it.

        Returns:
            An authenticated client.

        Raises:
            AuthError: The token endpoint rejected the credentials.
            TransportError: The token request could not be completed.
        """
        owns_http = http_client is None
        http = http_client or create_async_http_client(
            platform.base_url,
            timeout=timeout,
            connect_timeout=connect_timeout,
        )
        client = cls(
            platform,
            credentials,
            http,
            token_buffer=token_buffer,
            owns_http=owns_http,
        )

        with trace_operation("client_create", platform=platform):
            try:
                await client.ensure_token()
            except BaseException:
                # includes cancellation
                await client.close()
                raise

        get_logger().info("client_created", platform=str(platform))
        return client

    @classmethod
    async def from_config(
        cls,
        config: DattoConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> Self:
        """Create a client from a :class:`~datto_rmm.config.DattoConfig`.

        ``config.telemetry`` is not applied here because logging and tracing
        setup is process-wide; call
        :func:`~datto_rmm.telemetry.configure_telemetry` with it once at
        startup.
        """
        return await cls.create(
            config.platform,
            config.credentials,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            token_buffer=config.token_buffer,
            http_client=http_client,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._owns_http:
            await self._http.aclose()

    @property
    def platform(self) -> Platform:
        """Platform this client is connected to."""
        return self._platform

    @property
    def base_url(self) -> str:
        """Base URL for API requests."""
        return self._platform.base_url

    @property
    def transport(self) -> httpx.AsyncClient:
        """The underlying HTTP client.

        Requests sent through it are not authenticated unless ``auth`` is
        passed or the bearer header is added by hand.
        """
        return self._http

    @property
    def tokens(self) -> TokenCache:
        """The token cache backing :meth:`ensure_token`."""
        return self._tokens

    @property
    def auth(self) -> BearerAuth:
        """httpx auth that adds the bearer token to each request."""
        return self.bearer_auth()

    def bearer_auth(
        self, *, on_auth_error: Callable[[ApiError], None] | None = None
    ) -> BearerAuth:
        """Build a :class:`BearerAuth` bound to this client's token cache."""
        return BearerAuth(self.ensure_token, on_auth_error=on_auth_error)

    async def ensure_token(self) -> str:
        """Return a valid access token, refreshing it when near expiry."""
        return await self._tokens.ensure_valid_token()

    async def clear_token(self) -> None:
        """Forget the cached token; the next call refreshes."""
        await self._tokens.clear()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(platform={self._platform!s})"
