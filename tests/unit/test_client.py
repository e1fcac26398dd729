"""Unit tests for DattoClient creation, token access and lifecycle."""

import asyncio
import time

import httpx
import pytest
from opentelemetry import trace

from datto_rmm.client import DattoClient
from datto_rmm.config import DattoConfig, TelemetryConfig
from datto_rmm.errors import AuthError, TransportError
from datto_rmm.models import Credentials, TokenState
from datto_rmm.platforms import Platform
from datto_rmm.telemetry import configure_telemetry, get_tracer

from ..fakes import FakeTokenEndpoint


class TestCreate:
    """Tests for DattoClient.create."""

    def test_fetches_token_eagerly(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """Creation should issue exactly one token request."""

        async def run() -> DattoClient:
            async with token_endpoint.http_client(Platform.ZINFANDEL) as http:
                client = await DattoClient.create(
                    Platform.ZINFANDEL, credentials, http_client=http
                )
                assert token_endpoint.calls == 1
                return client

        client = asyncio.run(run())

        assert client.platform is Platform.ZINFANDEL
        assert client.base_url == "https://zinfandel-api.centrastage.net/api"
        assert client.tokens.current is not None
        assert client.tokens.current.access_token == "token-1"
        assert str(token_endpoint.requests[0].url) == Platform.ZINFANDEL.token_endpoint

    def test_token_buffer_is_passed_to_cache(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """A custom buffer should reach the token cache."""

        async def run() -> DattoClient:
            async with token_endpoint.http_client() as http:
                return await DattoClient.create(
                    Platform.MERLOT, credentials, token_buffer=60, http_client=http
                )

        assert asyncio.run(run()).tokens.buffer_seconds == 60

    def test_auth_failure_produces_no_client(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """Rejected credentials should fail creation with AuthError."""
        token_endpoint.queue(httpx.Response(401, text="invalid_client"))

        async def run() -> None:
            async with token_endpoint.http_client() as http:
                await DattoClient.create(Platform.MERLOT, credentials, http_client=http)

        with pytest.raises(AuthError) as exc_info:
            asyncio.run(run())

        assert exc_info.value.status == 401
        assert "invalid_client" in str(exc_info.value)

    def test_transport_failure_produces_no_client(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """Unreachable token endpoints should fail creation with TransportError."""
        token_endpoint.queue(httpx.ConnectError("connection refused"))

        async def run() -> None:
            async with token_endpoint.http_client() as http:
                await DattoClient.create(Platform.MERLOT, credentials, http_client=http)

        with pytest.raises(TransportError):
            asyncio.run(run())

    def test_injected_transport_left_open_on_failure(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """A caller-supplied transport stays usable after a failed create."""
        token_endpoint.queue(httpx.Response(401, text="invalid_client"))

        async def run() -> bool:
            async with token_endpoint.http_client() as http:
                with pytest.raises(AuthError):
                    await DattoClient.create(Platform.MERLOT, credentials, http_client=http)
                return http.is_closed

        assert asyncio.run(run()) is False

    def test_owned_transport_closed_on_failure(
        self,
        token_endpoint: FakeTokenEndpoint,
        credentials: Credentials,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A transport the client created is closed when creation fails."""
        token_endpoint.queue(httpx.Response(401, text="invalid_client"))
        created: list[httpx.AsyncClient] = []

        def factory(base_url: str, **kwargs: float) -> httpx.AsyncClient:
            http = token_endpoint.http_client()
            created.append(http)
            return http

        monkeypatch.setattr("datto_rmm.client.create_async_http_client", factory)

        async def run() -> None:
            await DattoClient.create(Platform.MERLOT, credentials)

        with pytest.raises(AuthError):
            asyncio.run(run())

        assert len(created) == 1
        assert created[0].is_closed

    def test_owned_transport_closed_on_cancel(
        self,
        token_endpoint: FakeTokenEndpoint,
        credentials: Credentials,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Cancelling creation during the first token fetch closes the transport."""
        created: list[httpx.AsyncClient] = []

        def factory(base_url: str, **kwargs: float) -> httpx.AsyncClient:
            http = token_endpoint.http_client()
            created.append(http)
            return http

        monkeypatch.setattr("datto_rmm.client.create_async_http_client", factory)

        async def run() -> None:
            token_endpoint.gate = asyncio.Event()
            task = asyncio.create_task(DattoClient.create(Platform.MERLOT, credentials))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())

        assert len(created) == 1
        assert created[0].is_closed


class TestFromConfig:
    """Tests for DattoClient.from_config."""

    def test_uses_config_values(self, token_endpoint: FakeTokenEndpoint) -> None:
        """Platform, credentials and buffer should come from the config."""
        config = DattoConfig(
            api_key="cfg-key",
            api_secret="cfg-secret",
            platform="concord",
            token_buffer=120,
        )

        async def run() -> DattoClient:
            async with token_endpoint.http_client(Platform.CONCORD) as http:
                return await DattoClient.from_config(config, http_client=http)

        client = asyncio.run(run())

        assert client.platform is Platform.CONCORD
        assert client.tokens.buffer_seconds == 120
        sent = token_endpoint.requests[0]
        assert str(sent.url) == Platform.CONCORD.token_endpoint
        assert sent.headers["Authorization"] == f"Basic {config.credentials.basic_auth()}"

    def test_telemetry_applied_separately(self, token_endpoint: FakeTokenEndpoint) -> None:
        """from_config leaves tracing alone; configure_telemetry applies it."""
        config = DattoConfig(
            api_key="cfg-key",
            api_secret="cfg-secret",
            telemetry=TelemetryConfig(enabled=False),
        )

        async def run() -> None:
            async with token_endpoint.http_client() as http:
                await DattoClient.from_config(config, http_client=http)

        asyncio.run(run())
        assert not isinstance(get_tracer(), trace.NoOpTracer)

        configure_telemetry(config.telemetry)
        assert isinstance(get_tracer(), trace.NoOpTracer)


class TestEnsureToken:
    """Tests for DattoClient.ensure_token."""

    def test_cached_token_reused(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """A fresh token should be returned without another request."""

        async def run() -> list[str]:
            async with token_endpoint.http_client() as http:
                client = await DattoClient.create(Platform.MERLOT, credentials, http_client=http)
                return [await client.ensure_token() for _ in range(5)]

        assert asyncio.run(run()) == ["token-1"] * 5
        assert token_endpoint.calls == 1

    def test_stale_token_refreshed(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """A token inside the expiry buffer should be replaced."""

        async def run() -> str:
            async with token_endpoint.http_client() as http:
                client = await DattoClient.create(Platform.MERLOT, credentials, http_client=http)
                client.tokens._state = TokenState(
                    access_token="token-1", expires_at=time.monotonic() + 120
                )
                return await client.ensure_token()

        assert asyncio.run(run()) == "token-2"
        assert token_endpoint.calls == 2

    def test_clear_token(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """Clearing the token forces the next call to refresh."""

        async def run() -> str:
            async with token_endpoint.http_client() as http:
                client = await DattoClient.create(Platform.MERLOT, credentials, http_client=http)
                await client.clear_token()
                assert client.tokens.current is None
                return await client.ensure_token()

        assert asyncio.run(run()) == "token-2"

    def test_refresh_with_bearer_auth_as_transport_default(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """Refreshing still completes when client.auth is the transport default."""

        async def run() -> str:
            async with token_endpoint.http_client() as http:
                client = await DattoClient.create(Platform.MERLOT, credentials, http_client=http)
                http.auth = client.auth
                await client.clear_token()
                token = await asyncio.wait_for(client.ensure_token(), 2)
                await http.get("/v2/account")
                return token

        assert asyncio.run(run()) == "token-2"
        assert token_endpoint.calls == 2
        assert token_endpoint.api_requests[0].headers["Authorization"] == "Bearer token-2"

    def test_concurrent_calls_share_refresh(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """Parallel callers on a stale token trigger one request."""

        async def run() -> list[str]:
            async with token_endpoint.http_client() as http:
                client = await DattoClient.create(Platform.MERLOT, credentials, http_client=http)
                await client.clear_token()
                return await asyncio.gather(*(client.ensure_token() for _ in range(10)))

        assert asyncio.run(run()) == ["token-2"] * 10
        assert token_endpoint.calls == 2


class TestLifecycle:
    """Tests for closing the client."""

    def test_async_with_closes_owned_transport(
        self,
        token_endpoint: FakeTokenEndpoint,
        credentials: Credentials,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Leaving the context closes a transport the client created."""
        monkeypatch.setattr(
            "datto_rmm.client.create_async_http_client",
            lambda base_url, **kwargs: token_endpoint.http_client(),
        )

        async def run() -> httpx.AsyncClient:
            async with await DattoClient.create(Platform.MERLOT, credentials) as client:
                assert not client.transport.is_closed
            return client.transport

        assert asyncio.run(run()).is_closed

    def test_close_leaves_injected_transport_open(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """Closing the client does not close a caller-owned transport."""

        async def run() -> bool:
            async with token_endpoint.http_client() as http:
                client = await DattoClient.create(Platform.MERLOT, credentials, http_client=http)
                await client.close()
                return http.is_closed

        assert asyncio.run(run()) is False

    def test_repr_hides_credentials(
        self, token_endpoint: FakeTokenEndpoint, credentials: Credentials
    ) -> None:
        """repr shows the platform only."""

        async def run() -> DattoClient:
            async with token_endpoint.http_client() as http:
                return await DattoClient.create(Platform.MERLOT, credentials, http_client=http)

        text = repr(asyncio.run(run()))

        assert text == "DattoClient(platform=merlot)"
        assert "test-api-secret" not in text
