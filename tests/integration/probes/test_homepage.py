"""Integration tests for the homepage scene probes."""

import json

import aiohttp
import pytest
from aioresponses import aioresponses as aioresponses_cls
from yarl import URL

from scene_loadtest.metrics import MetricsRegistry
from scene_loadtest.models.result import Failure, Skipped, Success
from scene_loadtest.orchestrator import AuthState, SceneOrchestrator
from scene_loadtest.probes.base import ProbeContext
from scene_loadtest.probes.homepage import homepage_manifest
from scene_loadtest.probes.homepage.probes import auth_features, auth_me, login
from scene_loadtest.probes.registry import ProbeRegistry
from scene_loadtest.run_state import RunState
from scene_loadtest.testing.factories import catalog_entries
from scene_loadtest.testing.payloads import auth_me as auth_me_payload
from scene_loadtest.testing.payloads import login as login_payload
from scene_loadtest.testing.payloads import login_failed

API_BASE_URL = "http://api.test"
LOGIN_URL = f"{API_BASE_URL}/auth/login"
AUTH_ME_URL = f"{API_BASE_URL}/auth/me"


class TestLogin:
    """Tests for the password login probe."""

    async def test_returns_credential(
        self,
        context: ProbeContext,
        metrics: MetricsRegistry,
        aioresponses: aioresponses_cls,
    ) -> None:
        """Posts the credentials and returns the access token."""
        aioresponses.post(LOGIN_URL, status=200, payload=login_payload())

        result = await login.authenticate(API_BASE_URL, context)

        assert isinstance(result, Success)
        assert result.credential is not None
        assert result.credential.token == "test-access-token"

        request = aioresponses.requests[("POST", URL(LOGIN_URL))][0]
        assert json.loads(request.kwargs["data"]) == {
            "username": "loadtest.user",
            "password": "s3cret",
        }
        snapshot = metrics.snapshot()["metrics"]
        assert snapshot["auth_login_errors"]["values"]["rate"] == 0
        assert snapshot["auth_login_requests"]["values"]["count"] == 1

    async def test_skipped_without_credentials(
        self, context: ProbeContext, aioresponses: aioresponses_cls
    ) -> None:
        """No request is sent when credentials are not configured."""
        context.credentials = None

        result = await login.authenticate(API_BASE_URL, context)

        assert isinstance(result, Skipped)
        assert not aioresponses.requests

    async def test_rejected_credentials(
        self,
        context: ProbeContext,
        metrics: MetricsRegistry,
        aioresponses: aioresponses_cls,
    ) -> None:
        aioresponses.post(LOGIN_URL, status=401, payload=login_failed())

        result = await login.authenticate(API_BASE_URL, context)

        assert isinstance(result, Failure)
        assert result.kind == "check_failure"
        assert "login status is 200" in result.detail
        assert "login response has access_token" in result.detail
        assert result.response is not None
        assert result.response.status == 401
        assert metrics.snapshot()["metrics"]["auth_login_errors"]["values"]["rate"] == 1

    async def test_connection_error_is_raised(
        self,
        context: ProbeContext,
        metrics: MetricsRegistry,
        aioresponses: aioresponses_cls,
    ) -> None:
        aioresponses.post(LOGIN_URL, exception=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(aiohttp.ClientConnectionError):
            await login.authenticate(API_BASE_URL, context)

        assert metrics.snapshot()["metrics"]["auth_login_errors"]["values"]["rate"] == 1


class TestHomepageProbes:
    """Tests for the authenticated homepage probes."""

    async def test_auth_me_sends_bearer_token(
        self, context: ProbeContext, aioresponses: aioresponses_cls
    ) -> None:
        aioresponses.get(AUTH_ME_URL, status=200, payload=auth_me_payload())
        headers = {"Authorization": "Bearer test-access-token"}

        result = await auth_me.execute(API_BASE_URL, headers, context)

        assert isinstance(result, Success)
        request = aioresponses.requests[("GET", URL(AUTH_ME_URL))][0]
        assert request.kwargs["headers"]["Authorization"] == "Bearer test-access-token"
        assert request.kwargs["data"] is None

    async def test_non_json_body_fails_checks(
        self, context: ProbeContext, aioresponses: aioresponses_cls
    ) -> None:
        url = f"{API_BASE_URL}/auth/features"
        aioresponses.get(url, status=200, body="<html>maintenance</html>")

        result = await auth_features.execute(API_BASE_URL, {}, context)

        assert isinstance(result, Failure)
        assert result.detail == "Failed checks: auth/features valid JSON"


class TestHomepageScene:
    """Tests for running the homepage scene end to end."""

    @pytest.fixture
    def orchestrator(self, context: ProbeContext) -> SceneOrchestrator:
        return SceneOrchestrator(
            registry=ProbeRegistry.from_manifests([homepage_manifest]),
            plan={"homepage": catalog_entries("auth-me", "login")},
            base_url=API_BASE_URL,
            context=context,
            run_state=RunState(),
        )

    async def test_logs_in_before_protected_tests(
        self, orchestrator: SceneOrchestrator, aioresponses: aioresponses_cls
    ) -> None:
        aioresponses.post(LOGIN_URL, status=200, payload=login_payload())
        aioresponses.get(AUTH_ME_URL, status=200, payload=auth_me_payload())

        result = await orchestrator.run_scene("homepage")

        assert result.success
        assert [r.test_id for r in result.results] == ["login", "auth-me"]
        assert orchestrator.session.state is AuthState.AUTHENTICATED

    async def test_reauthenticates_after_expired_token(
        self, orchestrator: SceneOrchestrator, aioresponses: aioresponses_cls
    ) -> None:
        """A 401 triggers one fresh login and one retry with the new token."""
        aioresponses.post(LOGIN_URL, status=200, payload=login_payload(access_token="old"))
        aioresponses.post(LOGIN_URL, status=200, payload=login_payload(access_token="new"))
        aioresponses.get(AUTH_ME_URL, status=401, payload=login_failed("Token expired"))
        aioresponses.get(AUTH_ME_URL, status=200, payload=auth_me_payload())

        result = await orchestrator.run_scene("homepage")

        assert result.success
        assert orchestrator.session.reauth_count == 1
        requests = aioresponses.requests[("GET", URL(AUTH_ME_URL))]
        assert [r.kwargs["headers"]["Authorization"] for r in requests] == [
            "Bearer old",
            "Bearer new",
        ]
