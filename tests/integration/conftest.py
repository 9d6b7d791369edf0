"""Fixtures for integration tests."""

from collections.abc import AsyncGenerator, Generator

import pytest
from aioresponses import aioresponses as aioresponses_cls

from scene_loadtest.metrics import MetricsRegistry
from scene_loadtest.models.settings import Credentials
from scene_loadtest.probes.base import ProbeContext
from scene_loadtest.transport import HttpTransport


@pytest.fixture
def aioresponses() -> Generator[aioresponses_cls, None, None]:
    """Intercept aiohttp requests."""
    with aioresponses_cls() as mocked:
        yield mocked


@pytest.fixture
def metrics() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
async def transport(
    metrics: MetricsRegistry, aioresponses: aioresponses_cls
) -> AsyncGenerator[HttpTransport, None]:
    """Create transport with managed session."""
    async with HttpTransport.from_config(timeout=5, metrics=metrics) as impl:
        yield impl


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="loadtest.user", password="s3cret")


@pytest.fixture
def context(
    transport: HttpTransport, metrics: MetricsRegistry, credentials: Credentials
) -> ProbeContext:
    return ProbeContext(transport=transport, metrics=metrics, credentials=credentials)
