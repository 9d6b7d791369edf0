"""Scene orchestrator: authentication lifecycle and test dispatch for one worker."""

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

from scene_loadtest.errors import AuthExhausted, SelectionError
from scene_loadtest.models.catalog import TestDescriptor
from scene_loadtest.models.result import (
    AggregateResult,
    Credential,
    ErrorLogEntry,
    Failure,
    ProbeResult,
    Skipped,
    Success,
    TestOutcome,
    TestRun,
)
from scene_loadtest.probes.base import LoginProbe, Probe, ProbeContext
from scene_loadtest.probes.registry import ProbeRegistry
from scene_loadtest.run_state import RunState

log = logging.getLogger(__name__)

MAX_AUTH_FAILURES = 3

UNAUTHORIZED = 401

UNAUTHORIZED_AFTER_REAUTH = "Unauthorized after re-authentication"


class AuthState(StrEnum):
    """Authentication states of a single worker."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


@dataclass(kw_only=True)
class AuthSession:
    """Authentication state machine owned by exactly one worker.

    ``anonymous`` marks the path taken when credentials are not configured:
    the worker counts as authenticated but sends no bearer token.
    """

    max_failures: int = MAX_AUTH_FAILURES
    token: str | None = field(default=None, repr=False)
    anonymous: bool = False
    failure_count: int = 0
    state: AuthState = AuthState.UNAUTHENTICATED
    reauth_count: int = 0

    def begin(self) -> None:
        """Enter ``AUTHENTICATING``.

        Raises:
            AuthExhausted: If the session already reached ``FAILED``

        """
        if self.state is AuthState.FAILED:
            raise AuthExhausted(self.failure_count)
        self.state = AuthState.AUTHENTICATING

    def succeed(self, credential: Credential) -> None:
        self.token = credential.token
        self.anonymous = False
        self.failure_count = 0
        self.state = AuthState.AUTHENTICATED

    def skip(self) -> None:
        self.token = None
        self.anonymous = True
        self.state = AuthState.AUTHENTICATED

    def fail(self) -> None:
        self.token = None
        self.failure_count += 1
        if self.failure_count >= self.max_failures:
            self.state = AuthState.FAILED
        else:
            self.state = AuthState.UNAUTHENTICATED

    def invalidate(self) -> None:
        """Drop the held token after the server rejected it."""
        self.token = None
        self.state = AuthState.UNAUTHENTICATED


@dataclass(frozen=True, kw_only=True)
class SceneOrchestrator:
    """Runs the selected tests of a scene for one worker.

    Each worker owns one orchestrator and its ``AuthSession``; ``run_state``
    is the only object shared between workers.
    """

    __test__ = False

    registry: ProbeRegistry
    plan: Mapping[str, Sequence[TestDescriptor]]
    base_url: str
    context: ProbeContext
    run_state: RunState
    think_time: float = 0.0
    vu_id: int = 0
    session: AuthSession = field(default_factory=AuthSession)
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def run_scene(self, scene: str, iteration: int = 0) -> AggregateResult:
        """Run every selected test of ``scene`` once, login first.

        Args:
            scene: Scene name, a key of ``plan``
            iteration: Iteration counter of this worker, for the error log

        Returns:
            Ordered test runs and the error log entries of this call

        Raises:
            AuthExhausted: If authentication failed too many consecutive times;
                the remaining tests of this call are not run
            SelectionError: If no tests are planned for the scene

        """
        tests = self.plan.get(scene)
        if not tests:
            raise SelectionError(f"No tests selected for scene '{scene}'")

        runs: list[TestRun] = []
        entries: list[ErrorLogEntry] = []
        for test in self._login_first(scene, tests):
            outcome = await self._run_test(scene, test.identifier)
            runs.append(TestRun(test_id=test.identifier, outcome=outcome))
            if not outcome.success:
                entries.append(
                    self._record_failure(scene, test.identifier, outcome, iteration)
                )
            await self.sleep(self.think_time)

        return AggregateResult(scene=scene, results=runs, error_log=entries)

    async def ensure_authentication(self) -> None:
        """Authenticate lazily unless the session is already authenticated.

        Soft failures leave the session unauthenticated and are not raised.

        Raises:
            AuthExhausted: If the session has reached ``FAILED``

        """
        if self.session.state is AuthState.AUTHENTICATED:
            return

        authenticator = self.registry.authenticator
        if authenticator is None:
            self.session.skip()
            return

        await self._authenticate(authenticator)

    def _login_first(
        self, scene: str, tests: Sequence[TestDescriptor]
    ) -> Sequence[TestDescriptor]:
        return sorted(
            tests, key=lambda t: not self.registry.is_login(scene, t.identifier)
        )

    async def _run_test(self, scene: str, test_id: str) -> TestOutcome:
        probe = self.registry.resolve(scene, test_id)
        if isinstance(probe, LoginProbe):
            return TestOutcome.from_probe_result(await self._authenticate(probe))

        await self.ensure_authentication()
        had_token = self.session.token is not None
        outcome = await self._invoke(probe)
        if outcome.http_status != UNAUTHORIZED or not had_token:
            return outcome

        log.info(
            "Received 401 for %s/%s, re-authenticating (vu=%d)",
            scene,
            test_id,
            self.vu_id,
        )
        self.session.invalidate()
        self.session.reauth_count += 1
        await self.ensure_authentication()
        if self.session.token is None:
            return outcome

        retried = await self._invoke(probe, retry=True)
        if retried.http_status == UNAUTHORIZED:
            return dataclasses.replace(
                retried, success=False, error=UNAUTHORIZED_AFTER_REAUTH
            )
        return retried

    async def _authenticate(self, probe: LoginProbe) -> ProbeResult:
        self.session.begin()
        try:
            result = await probe.authenticate(self.base_url, self.context)
        except Exception as e:
            self.session.fail()
            log.warning(
                "Authentication attempt %d failed: %s",
                self.session.failure_count,
                e,
            )
            return Failure(kind="error", detail=f"{type(e).__name__}: {e}")

        self._apply_login(result)
        return result

    def _apply_login(self, result: ProbeResult) -> None:
        match result:
            case Success(credential=Credential() as credential):
                self.session.succeed(credential)
                log.debug("Authenticated (vu=%d)", self.vu_id)
            case Success():
                self.session.fail()
                log.warning("Login succeeded but returned no access token")
            case Skipped(reason=reason):
                self.session.skip()
                if self.run_state.first_report("auth", "skipped"):
                    log.warning("Running without authentication: %s", reason)
            case Failure(detail=detail):
                self.session.fail()
                log.warning(
                    "Authentication attempt %d failed: %s",
                    self.session.failure_count,
                    detail,
                )

    async def _invoke(self, probe: Probe, *, retry: bool = False) -> TestOutcome:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"

        try:
            call = probe.retry if retry else probe.execute
            result = await call(self.base_url, headers, self.context)
        except Exception as e:
            return TestOutcome(success=False, error=f"{type(e).__name__}: {e}")
        return TestOutcome.from_probe_result(result)

    def _record_failure(
        self, scene: str, test_id: str, outcome: TestOutcome, iteration: int
    ) -> ErrorLogEntry:
        kind = outcome.failure_kind or "check_failure"
        entry = ErrorLogEntry(
            timestamp=datetime.now(timezone.utc),
            scene=scene,
            test_id=test_id,
            kind=kind,
            http_status=outcome.http_status,
            body_excerpt=outcome.body_excerpt,
            vu_id=self.vu_id,
            iteration=iteration,
            message=outcome.error or outcome.detail or "Validation checks failed",
        )
        self.run_state.record(entry)

        if kind == "error":
            log.error(
                "Test %s/%s failed (vu=%d, iteration=%d): %s status=%s body=%s",
                scene,
                test_id,
                self.vu_id,
                iteration,
                entry.message,
                entry.http_status,
                entry.body_excerpt,
            )
        elif self.run_state.first_report(scene, test_id):
            log.warning(
                "Test %s/%s checks failed: %s status=%s "
                "(further check failures of this test are not logged)",
                scene,
                test_id,
                entry.message,
                entry.http_status,
            )
        return entry
