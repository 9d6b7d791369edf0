"""Homepage scene probes: login and the master data loaded on the homepage."""

import json
import logging
from dataclasses import dataclass

from scene_loadtest.metrics import record_probe
from scene_loadtest.models.result import (
    Credential,
    ProbeResult,
    Response,
    Skipped,
    Success,
)
from scene_loadtest.probes.base import (
    ApiProbe,
    LoginProbe,
    ProbeContext,
    error_is_false,
    evaluate,
    json_data,
    standard_checks,
)

log = logging.getLogger(__name__)


def _access_token(response: Response) -> str | None:
    data = json_data(response)
    if isinstance(data, dict) and data.get("access_token"):
        return str(data["access_token"])
    return None


def _has_user_info(response: Response) -> bool:
    data = json_data(response)
    return isinstance(data, dict) and bool(data.get("user_info"))


@dataclass(frozen=True, kw_only=True)
class PasswordLogin(LoginProbe):
    """Log in with username and password via ``POST /auth/login``."""

    path: str = "/auth/login"
    limit_ms: float = 3000

    async def authenticate(self, base_url: str, context: ProbeContext) -> ProbeResult:
        if context.credentials is None:
            return Skipped(reason="Test user credentials are not configured")

        payload = {
            "username": context.credentials.username,
            "password": context.credentials.password.get_secret_value(),
        }
        try:
            response = await context.transport.send(
                "POST",
                f"{base_url}{self.path}",
                json.dumps(payload),
                {"Content-Type": "application/json"},
            )
        except Exception:
            record_probe(context.metrics, self.metric, success=False, duration_ms=0)
            raise

        checks = standard_checks("login", limit_ms=self.limit_ms)
        checks["login response has access_token"] = _access_token
        checks["login response error is false"] = error_is_false
        checks["login response has user_info"] = _has_user_info

        result = evaluate(response, checks)
        record_probe(
            context.metrics,
            self.metric,
            success=isinstance(result, Success),
            duration_ms=response.duration_ms,
        )
        token = _access_token(response)
        if not isinstance(result, Success) or token is None:
            return result
        return Success(response=response, credential=Credential(token=token))


login = PasswordLogin(metric="auth_login")

auth_me = ApiProbe(metric="auth_me", label="auth/me", path="/auth/me")

auth_features = ApiProbe(
    metric="auth_features", label="auth/features", path="/auth/features"
)

master_categories = ApiProbe(
    metric="master_categories",
    label="master/categories",
    path="/master/categories",
)
