"""Models for environments, load profiles and the top-level configuration."""

import os
import re
from collections.abc import Mapping, Sequence
from typing import Literal, TypeAlias

from pydantic import Field, SecretStr, model_validator

from scene_loadtest.errors import ConfigError
from scene_loadtest.models.base import Model
from scene_loadtest.models.catalog import SceneCatalog, TestDescriptor

Executor: TypeAlias = Literal["constant-arrival-rate", "constant-vus", "ramping-vus"]

PLACEHOLDER_USERNAME = "PLACEHOLDER_USERNAME"
PLACEHOLDER_PASSWORD = "PLACEHOLDER_PASSWORD"

_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h)$")
_DURATION_UNITS: Mapping[str, float] = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: str) -> float:
    """Convert a duration such as ``"30s"`` or ``"2m"`` into seconds."""
    match = _DURATION_RE.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid duration: {value!r}")
    return float(match.group(1)) * _DURATION_UNITS[match.group(2)]


class Stage(Model):
    """A ramping stage: reach ``target`` VUs over ``duration``."""

    duration: str
    target: int = Field(..., ge=0)


class Scenario(Model):
    """Executor definition for one load scenario."""

    executor: Executor
    rate: int | None = None
    time_unit: str | None = None
    duration: str | None = None
    vus: int | None = None
    pre_allocated_vus: int | None = None
    max_vus: int | None = None
    start_vus: int | None = None
    stages: Sequence[Stage] | None = None

    def total_seconds(self) -> float:
        """Return the nominal run length of the scenario in seconds."""
        if self.stages:
            return sum(parse_duration(stage.duration) for stage in self.stages)
        if self.duration:
            return parse_duration(self.duration)
        return 0.0

    def concurrency(self) -> int:
        """Return the number of workers a simple driver should run."""
        candidates = [
            self.vus,
            self.pre_allocated_vus,
            self.start_vus,
            max((stage.target for stage in self.stages or ()), default=None),
        ]
        return max((c for c in candidates if c), default=1)


class TestSetting(Model):
    """A named load profile with thresholds and think time."""

    __test__ = False

    description: str = ""
    scenarios: Mapping[str, Scenario]
    thresholds: Mapping[str, Sequence[str]] = Field(default_factory=dict)
    sleep_duration: float = Field(default=1.0, ge=0)

    def with_overrides(
        self, *, users: int | None = None, duration: str | None = None
    ) -> "TestSetting":
        """Apply user-count and duration overrides to every scenario.

        Only scenarios that already define ``vus``/``start_vus``/``duration``
        are changed.
        """
        if users is None and duration is None:
            return self

        scenarios: dict[str, Scenario] = {}
        for name, scenario in self.scenarios.items():
            update: dict[str, object] = {}
            if users is not None:
                if scenario.vus is not None:
                    update["vus"] = users
                if scenario.start_vus is not None:
                    update["start_vus"] = max(1, min(users // 10, 10))
            if duration is not None and scenario.duration is not None:
                update["duration"] = duration
            scenarios[name] = scenario.model_copy(update=update)
        return self.model_copy(update={"scenarios": scenarios})

    def primary_scenario(self) -> Scenario:
        """Return the first scenario of the setting."""
        return next(iter(self.scenarios.values()))


def describe_setting(setting: TestSetting) -> str:
    """Render the load pattern of a setting as a short one-liner."""
    scenario = setting.primary_scenario()
    think = f"{setting.sleep_duration:g}s think"

    match scenario.executor:
        case "constant-arrival-rate":
            return f"{scenario.rate} req/s, up to {scenario.max_vus} VUs, {think}"
        case "constant-vus":
            return f"{scenario.vus} VU, {scenario.duration}, {think}"
        case "ramping-vus" if scenario.stages:
            max_target = max(stage.target for stage in scenario.stages)
            total = scenario.total_seconds()
            span = f"{round(total / 60)}m" if total >= 60 else f"{total:g}s"
            return f"{scenario.start_vus or 0}→{max_target} VUs over {span}, {think}"
        case _:
            return f"Custom, {think}"


class Credentials(Model):
    """Login credentials for the virtual user."""

    username: str
    password: SecretStr


class Environment(Model):
    """A target environment and where to find its test user credentials."""

    base_url: str
    timeout: float = Field(default=60.0, gt=0, description="Request timeout (s)")
    username_env: str | None = None
    password_env: str | None = None

    def credentials(
        self, environ: Mapping[str, str] | None = None
    ) -> Credentials | None:
        """Resolve credentials from the environment.

        Returns None when they are missing or still set to placeholders.
        """
        environ = os.environ if environ is None else environ
        username = environ.get(self.username_env, "") if self.username_env else ""
        password = environ.get(self.password_env, "") if self.password_env else ""
        if not username or not password:
            return None
        if username == PLACEHOLDER_USERNAME or password == PLACEHOLDER_PASSWORD:
            return None
        return Credentials(username=username, password=SecretStr(password))


class LoadTestConfig(Model):
    """Complete load test configuration loaded from YAML."""

    environments: Mapping[str, Environment]
    test_settings: Mapping[str, TestSetting]
    scenes: Mapping[str, Sequence[TestDescriptor]]

    @model_validator(mode="after")
    def _validate_scenes(self) -> "LoadTestConfig":
        for name, tests in self.scenes.items():
            SceneCatalog(name=name, tests=tests)
        return self

    def catalog(self, scene: str) -> SceneCatalog:
        """Return the catalog of a scene."""
        if scene not in self.scenes:
            raise ConfigError(
                f"Unknown scene '{scene}'. Available scenes: {sorted(self.scenes)}"
            )
        return SceneCatalog(name=scene, tests=self.scenes[scene])

    def environment(self, name: str) -> Environment:
        """Return the named environment."""
        if name not in self.environments:
            raise ConfigError(f"Environment '{name}' not found in configuration")
        return self.environments[name]

    def test_setting(self, name: str) -> TestSetting:
        """Return the named test setting."""
        if name not in self.test_settings:
            raise ConfigError(f"Test setting '{name}' not found in configuration")
        return self.test_settings[name]
