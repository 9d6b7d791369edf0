"""Assemble and persist the artifacts of a load test run."""

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from scene_loadtest.metrics import MetricsSnapshot
from scene_loadtest.models.result import ErrorLogEntry, RunMetadata
from scene_loadtest.reporting.html import render_html
from scene_loadtest.reporting.summary import render_summary
from scene_loadtest.reporting.tabular import render_csv

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True, kw_only=True)
class Report:
    """Rendered artifacts of one run, sharing a common base name.

    ``errors_json`` is None when the run recorded no errors; no error file is
    written in that case.
    """

    base_name: str
    summary: str
    html: str
    csv: str
    json: str
    errors_json: str | None = None


def report_base_name(metadata: RunMetadata, now: datetime) -> str:
    """Return ``{environment}_{YYYYMMDDHHMMSS}_{scene}_{test_name}``."""
    return (
        f"{metadata.environment}_{now.strftime(TIMESTAMP_FORMAT)}"
        f"_{metadata.scene}_{metadata.test_name}"
    )


def generate_reports(
    snapshot: MetricsSnapshot,
    metadata: RunMetadata,
    error_log: Sequence[ErrorLogEntry] = (),
    *,
    now: datetime | None = None,
) -> Report:
    """Render every report format from a metrics snapshot.

    Args:
        snapshot: Metrics snapshot of the run
        metadata: Descriptive metadata of the run
        error_log: Recorded failures, in the order they occurred
        now: Local generation time, defaults to the current time

    Returns:
        The rendered report

    """
    now = now or datetime.now().astimezone()
    document = {**snapshot, "metadata": metadata.to_dict()}
    errors_json = None
    if error_log:
        errors_json = json.dumps(
            {
                "count": len(error_log),
                "errors": [entry.to_dict() for entry in error_log],
            },
            indent=2,
        )

    return Report(
        base_name=report_base_name(metadata, now),
        summary=render_summary(snapshot, metadata, now),
        html=render_html(snapshot, metadata, error_log, now),
        csv=render_csv(snapshot, metadata, now),
        json=json.dumps(document, indent=2),
        errors_json=errors_json,
    )


def write_reports(report: Report, directory: Path) -> Sequence[Path]:
    """Write the file-shaped artifacts and return their paths."""
    directory.mkdir(parents=True, exist_ok=True)
    artifacts = {
        f"{report.base_name}.json": report.json,
        f"{report.base_name}.html": report.html,
        f"{report.base_name}.csv": report.csv,
    }
    if report.errors_json is not None:
        artifacts[f"{report.base_name}_errors.json"] = report.errors_json

    paths = []
    for name, content in artifacts.items():
        path = directory / name
        path.write_text(content, encoding="utf-8")
        log.info("Report written: %s", path)
        paths.append(path)
    return paths
