"""Integration tests running a scene through the driver into the reports."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from aioresponses import aioresponses as aioresponses_cls

from scene_loadtest.driver import LoadDriver
from scene_loadtest.metrics import MetricsRegistry
from scene_loadtest.models.result import RunMetadata
from scene_loadtest.models.settings import Credentials
from scene_loadtest.probes.homepage import homepage_manifest
from scene_loadtest.probes.quotation import quotation_manifest
from scene_loadtest.probes.registry import ProbeRegistry
from scene_loadtest.reporting.generator import generate_reports
from scene_loadtest.run_state import RunState
from scene_loadtest.testing.factories import TestSettingFactory, catalog_entries
from scene_loadtest.testing.payloads import login, quotation_detail, quotation_list
from scene_loadtest.transport import HttpTransport

API_BASE_URL = "http://api.test"
STARTED = datetime(2099, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def run_state() -> RunState:
    return RunState()


@pytest.fixture
def driver(
    transport: HttpTransport,
    metrics: MetricsRegistry,
    run_state: RunState,
    credentials: Credentials,
) -> LoadDriver:
    """Create a single-iteration driver for the quotation scene."""
    return LoadDriver(
        registry=ProbeRegistry.from_manifests([homepage_manifest, quotation_manifest]),
        plan={
            "quotation": catalog_entries(
                "list-quotations-mywork", "get-quotation-detail"
            )
        },
        scene="quotation",
        base_url=API_BASE_URL,
        transport=transport,
        metrics=metrics,
        run_state=run_state,
        credentials=credentials,
        iterations=1,
        sleep=AsyncMock(),
    )


def metadata() -> RunMetadata:
    return RunMetadata(
        scene="quotation",
        test_name="all-tests",
        test_setting_name="default",
        test_setting=TestSettingFactory.build(),
        environment="development",
        test_start_time=STARTED,
    ).finished(STARTED)


async def test_quotation_scene_logs_in_with_homepage_login(
    driver: LoadDriver,
    metrics: MetricsRegistry,
    run_state: RunState,
    aioresponses: aioresponses_cls,
) -> None:
    """Protected quotation probes reuse the homepage login."""
    aioresponses.post(f"{API_BASE_URL}/auth/login", status=200, payload=login())
    aioresponses.post(
        f"{API_BASE_URL}/quotation/requests/list",
        status=200,
        payload=quotation_list(101),
    )
    aioresponses.get(
        f"{API_BASE_URL}/quotation/detail/101",
        status=200,
        payload=quotation_detail(101),
    )

    summary = await driver.run()

    assert summary.success
    assert run_state.error_log == ()
    snapshot = metrics.snapshot()
    assert snapshot["metrics"]["http_reqs"]["values"]["count"] == 3
    assert snapshot["metrics"]["vus_max"]["values"]["max"] == 1

    report = generate_reports(snapshot, metadata(), run_state.error_log)
    assert report.errors_json is None
    assert "quotation_detail_response_time" in report.csv.splitlines()[0]
    assert json.loads(report.json)["metadata"]["scene"] == "quotation"


async def test_failed_probe_reaches_error_report(
    driver: LoadDriver,
    metrics: MetricsRegistry,
    run_state: RunState,
    aioresponses: aioresponses_cls,
) -> None:
    aioresponses.post(f"{API_BASE_URL}/auth/login", status=200, payload=login())
    aioresponses.post(
        f"{API_BASE_URL}/quotation/requests/list",
        status=200,
        payload=quotation_list(101),
    )
    aioresponses.get(
        f"{API_BASE_URL}/quotation/detail/101",
        status=500,
        body="upstream unavailable",
    )

    summary = await driver.run()

    assert not summary.success
    (entry,) = run_state.error_log
    assert entry.test_id == "get-quotation-detail"
    assert entry.http_status == 500
    assert entry.body_excerpt == "upstream unavailable"
    assert entry.vu_id == 1

    report = generate_reports(metrics.snapshot(), metadata(), run_state.error_log)
    assert report.errors_json is not None
    errors = json.loads(report.errors_json)
    assert errors["count"] == 1
    assert errors["errors"][0]["test_id"] == "get-quotation-detail"
    assert "upstream unavailable" in report.html
