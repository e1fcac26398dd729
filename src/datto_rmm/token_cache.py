"""Shared OAuth access token cache for one Datto RMM client.

The cache holds at most one :class:`~datto_rmm.models.TokenState`. Readers
take the shared side of a reader/writer lock to check it; a refresh takes
the exclusive side only to swap in the new state, never across the token
request itself. Concurrent callers that find the token stale join a single
in-flight refresh instead of each issuing their own request.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

import aiorwlock

from .errors import DattoError
from .http import request_token
from .models import TokenState
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from .models import Credentials
    from .platforms import Platform

# Refresh this long before the server-reported expiry
DEFAULT_EXPIRY_BUFFER = 5 * 60


class TokenCache:
    """Lazily refreshed client-credentials token, safe for concurrent callers."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        platform: Platform,
        credentials: Credentials,
        *,
        buffer_seconds: float = DEFAULT_EXPIRY_BUFFER,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the token cache.

        Args:
            http: Transport used for token requests.
            platform: Platform whose token endpoint issues tokens.
            credentials: API key and secret.
            buffer_seconds: Treat tokens expiring within this window as stale.
            clock: Monotonic clock, in seconds.
        """
        self._http = http
        self._platform = platform
        self._credentials = credentials
        self._buffer = buffer_seconds
        self._clock = clock

        self._state: TokenState | None = None
        self._lock = aiorwlock.RWLock()
        self._inflight: asyncio.Task[str] | None = None
        self._logger = get_logger().bind(platform=str(platform))

    @property
    def current(self) -> TokenState | None:
        """The cached token state, or None when empty."""
        return self._state

    @property
    def buffer_seconds(self) -> float:
        """Expiry buffer in seconds."""
        return self._buffer

    async def ensure_valid_token(self) -> str:
        """Return a token valid beyond the expiry buffer, refreshing if needed.

        Returns:
            Access token.

        Raises:
            AuthError: The token endpoint rejected the credentials.
            TransportError: The token request could not be completed.
        """
        async with self._lock.reader_lock:
            state = self._state

        if state is not None and state.is_fresh(self._clock(), self._buffer):
            return state.access_token

        return await self._join_refresh()

    async def refresh_token(self) -> str:
        """Fetch a new token regardless of the cached one.

        On failure the cache is emptied and the error is raised.
        """
        with trace_operation("token_refresh", platform=self._platform):
            try:
                response = await request_token(
                    self._http,
                    self._platform.token_endpoint,
                    self._credentials,
                )
            except DattoError as e:
                await self._store(None)
                self._logger.warning(
                    "token_refresh_failed",
                    code=e.code,
                    status_code=e.status_code,
                )
                raise

            state = TokenState.from_response(response, now=self._clock())
            await self._store(state)

        self._logger.debug("token_refreshed", expires_in=response.expires_in)
        return state.access_token

    async def clear(self) -> None:
        """Drop the cached token so the next access refreshes."""
        await self._store(None)

    async def _store(self, state: TokenState | None) -> None:
        async with self._lock.writer_lock:
            self._state = state

    async def _join_refresh(self) -> str:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._run_refresh())
            self._inflight.add_done_callback(_retrieve_exception)
        # shield: a cancelled waiter must not cancel the shared refresh
        return await asyncio.shield(self._inflight)

    async def _run_refresh(self) -> str:
        try:
            return await self.refresh_token()
        finally:
            self._inflight = None


def _retrieve_exception(task: asyncio.Task[str]) -> None:
    # Marks a failure as seen when every waiter was cancelled; it is already
    # logged as token_refresh_failed.
    if not task.cancelled():
        task.exception()
