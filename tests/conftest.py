"""
Shared test fixtures for Datto RMM client tests.

Provides credentials, a fake OAuth token endpoint served through
``httpx.MockTransport``, and a controllable monotonic clock.
"""

from __future__ import annotations

import pytest

from datto_rmm import telemetry
from datto_rmm.models import Credentials

from .fakes import FakeClock, FakeTokenEndpoint


@pytest.fixture
def credentials() -> Credentials:
    """Provide API credentials for testing."""
    return Credentials(api_key="test-api-key", api_secret="test-api-secret")


@pytest.fixture
def token_endpoint() -> FakeTokenEndpoint:
    """Provide a fake token endpoint issuing one-hour tokens."""
    return FakeTokenEndpoint()


@pytest.fixture
def clock() -> FakeClock:
    """Provide a hand-driven monotonic clock."""
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_telemetry():
    """Restore module-level tracer and logger after each test."""
    yield
    telemetry._tracer = None
    telemetry._logger = None
