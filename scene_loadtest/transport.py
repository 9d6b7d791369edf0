"""HTTP transport used by probes."""

import logging
import time
from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol

import aiohttp

from scene_loadtest.metrics import MetricsRegistry
from scene_loadtest.models.result import Response

log = logging.getLogger(__name__)


class Transport(Protocol):
    """Capability to send one HTTP request and wait for its response."""

    async def send(
        self,
        method: str,
        url: str,
        body: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send a request and return the full response."""
        ...


@dataclass(frozen=True, kw_only=True)
class HttpTransport:
    """aiohttp-backed transport that records k6-style HTTP metrics."""

    session: aiohttp.ClientSession = field(repr=False)
    metrics: MetricsRegistry | None = None

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, *, timeout: float, metrics: MetricsRegistry | None = None
    ) -> AsyncGenerator["HttpTransport", None]:
        """Create a transport with a managed session lifecycle."""
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as session:
            yield cls(session=session, metrics=metrics)

    async def send(
        self,
        method: str,
        url: str,
        body: str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Response:
        """Send a request; transport failures are recorded and re-raised."""
        started = time.perf_counter()
        try:
            async with self.session.request(
                method, url, data=body, headers=dict(headers or {})
            ) as response:
                raw = await response.read()
                status = response.status
                response_headers = dict(response.headers)
        except (aiohttp.ClientError, TimeoutError):
            self._record(failed=True, duration_ms=_elapsed_ms(started))
            log.debug("Request failed: %s %s", method, url, exc_info=True)
            raise

        duration_ms = _elapsed_ms(started)
        self._record(failed=status >= 400, duration_ms=duration_ms)
        return Response(
            status=status,
            headers=response_headers,
            body=raw.decode("utf-8", errors="replace"),
            duration_ms=duration_ms,
        )

    def _record(self, *, failed: bool, duration_ms: float) -> None:
        if self.metrics is None:
            return
        self.metrics.counter("http_reqs").add(1)
        self.metrics.trend("http_req_duration").add(duration_ms)
        self.metrics.rate("http_req_failed").add(failed)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
