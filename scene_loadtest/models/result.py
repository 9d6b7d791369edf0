"""Models for probe results, test outcomes and run metadata."""

import dataclasses
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, TypeAlias

from scene_loadtest.models.settings import TestSetting

BODY_EXCERPT_LIMIT = 1000

FailureKind: TypeAlias = Literal["error", "check_failure"]


def excerpt(body: str | None, limit: int = BODY_EXCERPT_LIMIT) -> str | None:
    """Truncate a response body to the first ``limit`` characters."""
    if body is None:
        return None
    return body[:limit]


@dataclass(frozen=True, kw_only=True)
class Response:
    """HTTP response as seen by probes."""

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: str = ""
    duration_ms: float = 0.0


@dataclass(frozen=True, kw_only=True)
class Credential:
    """Bearer credential obtained by the login probe."""

    token: str = field(repr=False)


@dataclass(frozen=True, kw_only=True)
class Success:
    """The probe ran and all of its checks passed."""

    response: Response | None = None
    credential: Credential | None = None


@dataclass(frozen=True, kw_only=True)
class Skipped:
    """The probe chose not to run, e.g. credentials are not configured."""

    reason: str


@dataclass(frozen=True, kw_only=True)
class Failure:
    """The probe ran and failed.

    ``check_failure`` means a response arrived but validations failed;
    ``error`` means the request itself could not be completed.
    """

    kind: FailureKind
    detail: str
    response: Response | None = None


ProbeResult: TypeAlias = Success | Skipped | Failure


@dataclass(frozen=True, kw_only=True)
class TestOutcome:
    """Outcome of exactly one probe invocation."""

    __test__ = False

    success: bool
    http_status: int | None = None
    duration_ms: float = 0.0
    body_excerpt: str | None = None
    error: str | None = None
    detail: str | None = None

    @property
    def failure_kind(self) -> FailureKind | None:
        """Classify a failed outcome; None for successes."""
        if self.success:
            return None
        return "error" if self.error else "check_failure"

    @classmethod
    def from_probe_result(cls, result: ProbeResult) -> "TestOutcome":
        """Flatten a tagged probe result into an outcome."""
        match result:
            case Success(response=response):
                return cls._with_response(True, response)
            case Skipped(reason=reason):
                return cls(success=True, detail=reason)
            case Failure(kind="error", detail=detail, response=response):
                return dataclasses.replace(
                    cls._with_response(False, response), error=detail
                )
            case Failure(detail=detail, response=response):
                return dataclasses.replace(
                    cls._with_response(False, response), detail=detail
                )
        raise TypeError(f"Unknown probe result: {result!r}")

    @classmethod
    def _with_response(cls, success: bool, response: Response | None) -> "TestOutcome":
        if response is None:
            return cls(success=success)
        return cls(
            success=success,
            http_status=response.status,
            duration_ms=response.duration_ms,
            body_excerpt=excerpt(response.body),
        )


@dataclass(frozen=True, kw_only=True)
class ErrorLogEntry:
    """A failed outcome recorded for the error-log artifact."""

    timestamp: datetime
    scene: str
    test_id: str
    kind: FailureKind
    http_status: int | None
    body_excerpt: str | None
    vu_id: int
    iteration: int
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entry for JSON output."""
        data = dataclasses.asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


@dataclass(frozen=True, kw_only=True)
class TestRun:
    """A test descriptor paired with its outcome."""

    __test__ = False

    test_id: str
    outcome: TestOutcome


@dataclass(frozen=True, kw_only=True)
class AggregateResult:
    """Result of running the selected tests of one scene once."""

    scene: str
    results: Sequence[TestRun]
    error_log: Sequence[ErrorLogEntry] = ()

    @property
    def success(self) -> bool:
        """True when every outcome succeeded."""
        return all(run.outcome.success for run in self.results)

    @property
    def total_duration(self) -> float:
        """Sum of per-test durations in milliseconds."""
        return sum(run.outcome.duration_ms for run in self.results)


@dataclass(frozen=True, kw_only=True)
class RunMetadata:
    """Descriptive metadata of a load test run, read by the report generator."""

    scene: str
    test_name: str
    test_setting_name: str
    test_setting: TestSetting
    environment: str
    test_start_time: datetime
    test_end_time: datetime | None = None

    def finished(self, end_time: datetime) -> "RunMetadata":
        """Return a copy with the end time set; it may only be set once."""
        if self.test_end_time is not None:
            raise ValueError("Run end time is already set")
        return dataclasses.replace(self, test_end_time=end_time)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the metadata for JSON output."""
        return {
            "scene": self.scene,
            "testName": self.test_name,
            "testSettingName": self.test_setting_name,
            "testSettingDescription": self.test_setting.description,
            "environment": self.environment,
            "testStartTime": self.test_start_time.isoformat(),
            "testEndTime": (
                self.test_end_time.isoformat() if self.test_end_time else None
            ),
            "scenarios": {
                name: scenario.model_dump(mode="json", exclude_none=True)
                for name, scenario in self.test_setting.scenarios.items()
            },
            "thresholds": {
                metric: list(expressions)
                for metric, expressions in self.test_setting.thresholds.items()
            },
            "sleepDuration": self.test_setting.sleep_duration,
        }
