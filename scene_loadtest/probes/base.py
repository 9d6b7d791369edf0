"""Abstract base classes for probes and the helpers they share."""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from scene_loadtest.metrics import MetricsRegistry, record_probe
from scene_loadtest.models.result import Failure, ProbeResult, Response, Success
from scene_loadtest.models.settings import Credentials
from scene_loadtest.transport import Transport

log = logging.getLogger(__name__)

Check: TypeAlias = Callable[[Response], Any]


@dataclass(kw_only=True)
class ProbeContext:
    """Collaborators and per-worker state handed to every probe call.

    ``values`` carries data between probes of the same worker, such as the
    id of a quotation created earlier in the iteration.
    """

    transport: Transport
    metrics: MetricsRegistry
    credentials: Credentials | None = field(default=None, repr=False)
    values: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class Probe(ABC):
    """A single executable check against one API operation."""

    metric: str

    @abstractmethod
    async def execute(
        self,
        base_url: str,
        headers: Mapping[str, str],
        context: ProbeContext,
    ) -> ProbeResult:
        """Run the probe once.

        Args:
            base_url: Root URL of the target service
            headers: Request headers, including the bearer token if any
            context: Transport, metrics and per-worker values

        Returns:
            Tagged result of the probe

        """

    async def retry(
        self,
        base_url: str,
        headers: Mapping[str, str],
        context: ProbeContext,
    ) -> ProbeResult:
        """Run the probe again after re-authentication.

        Probes made of several requests override this to skip the requests
        that already succeeded.
        """
        return await self.execute(base_url, headers, context)


@dataclass(frozen=True, kw_only=True)
class LoginProbe(Probe):
    """A probe that doubles as the authentication operation."""

    @abstractmethod
    async def authenticate(self, base_url: str, context: ProbeContext) -> ProbeResult:
        """Log in and return ``Success`` carrying a ``Credential``.

        Returns ``Skipped`` when no credentials are configured.
        """

    async def execute(
        self,
        base_url: str,
        headers: Mapping[str, str],
        context: ProbeContext,
    ) -> ProbeResult:
        """Logging in needs no prior authentication, so headers are unused."""
        return await self.authenticate(base_url, context)


def json_body(response: Response) -> Any:
    """Parse the response body as JSON, returning None when it is not JSON."""
    try:
        return json.loads(response.body)
    except ValueError:
        return None


def json_data(response: Response) -> Any:
    """Return the ``data`` member of a JSON object body, if present."""
    body = json_body(response)
    if isinstance(body, dict):
        return body.get("data")
    return None


def status_in(*statuses: int) -> Check:
    return lambda r: r.status in statuses


def faster_than(limit_ms: float) -> Check:
    return lambda r: r.duration_ms < limit_ms


def has_body(response: Response) -> bool:
    return bool(response.body)


def is_json(response: Response) -> bool:
    try:
        json.loads(response.body)
    except ValueError:
        return False
    return True


def error_is_false(response: Response) -> bool:
    body = json_body(response)
    return isinstance(body, dict) and body.get("error") is False


def standard_checks(
    label: str, *, limit_ms: float, statuses: tuple[int, ...] = (200,)
) -> dict[str, Check]:
    """Status, latency, body and JSON checks shared by every API probe."""
    status_label = " or ".join(str(s) for s in statuses)
    return {
        f"{label} status is {status_label}": status_in(*statuses),
        f"{label} response time < {limit_ms / 1000:g}s": faster_than(limit_ms),
        f"{label} has body": has_body,
        f"{label} valid JSON": is_json,
    }


def evaluate(response: Response, checks: Mapping[str, Check]) -> ProbeResult:
    """Run every named check; any failing check fails the probe."""
    failed: list[str] = []
    for name, check in checks.items():
        try:
            passed = bool(check(response))
        except (KeyError, IndexError, TypeError, AttributeError):
            passed = False
        if not passed:
            failed.append(name)

    if failed:
        return Failure(
            kind="check_failure",
            detail="Failed checks: " + ", ".join(failed),
            response=response,
        )
    return Success(response=response)


@dataclass(frozen=True, kw_only=True)
class ApiProbe(Probe):
    """A probe issuing one request and validating it with named checks.

    Subclasses customise the request, the checks and what happens after a
    successful response; metrics are recorded uniformly under ``metric``.
    """

    label: str
    method: str = "GET"
    path: str
    limit_ms: float = 2000
    statuses: tuple[int, ...] = (200,)

    def request(self, context: ProbeContext) -> tuple[str, Any] | Failure:
        """Return the path and JSON payload, or a Failure if not runnable."""
        return self.path, None

    def checks(self, context: ProbeContext) -> dict[str, Check]:
        return standard_checks(self.label, limit_ms=self.limit_ms, statuses=self.statuses)

    def on_success(self, response: Response, context: ProbeContext) -> None:
        """Hook for storing values from a successful response."""

    async def execute(
        self,
        base_url: str,
        headers: Mapping[str, str],
        context: ProbeContext,
    ) -> ProbeResult:
        prepared = self.request(context)
        if isinstance(prepared, Failure):
            record_probe(context.metrics, self.metric, success=False, duration_ms=0)
            return prepared

        path, payload = prepared
        body = json.dumps(payload) if payload is not None else None
        try:
            response = await context.transport.send(
                self.method, f"{base_url}{path}", body, headers
            )
        except Exception:
            record_probe(context.metrics, self.metric, success=False, duration_ms=0)
            raise

        result = evaluate(response, self.checks(context))
        record_probe(
            context.metrics,
            self.metric,
            success=isinstance(result, Success),
            duration_ms=response.duration_ms,
        )
        if isinstance(result, Success):
            self.on_success(response, context)
        return result
