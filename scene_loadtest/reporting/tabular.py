"""Single-row wide CSV for time-series dashboards."""

import csv
import io
from datetime import datetime
from typing import Any

from scene_loadtest.metrics import MetricsSnapshot
from scene_loadtest.models.result import RunMetadata
from scene_loadtest.reporting.snapshot import (
    custom_metric_names,
    format_number,
    is_ratio,
    metric_values,
)


def csv_columns(
    snapshot: MetricsSnapshot, metadata: RunMetadata, generated_at: datetime
) -> dict[str, Any]:
    """Build the ordered column mapping of the CSV row."""
    start = metadata.test_start_time.isoformat()
    columns: dict[str, Any] = {
        "timestamp": generated_at.isoformat(),
        "scene": metadata.scene,
        "test_name": metadata.test_name,
        "test_setting_name": metadata.test_setting_name,
        "test_setting_description": metadata.test_setting.description,
        "environment": metadata.environment,
        "test_start_time": start,
        "test_end_time": (
            metadata.test_end_time.isoformat() if metadata.test_end_time else start
        ),
    }

    if duration := metric_values(snapshot, "http_req_duration"):
        columns["http_req_duration_avg"] = f"{duration['avg']:.2f}"
        columns["http_req_duration_p95"] = f"{duration['p(95)']:.2f}"
        columns["http_req_duration_min"] = f"{duration['min']:.2f}"
        columns["http_req_duration_max"] = f"{duration['max']:.2f}"

    if failed := metric_values(snapshot, "http_req_failed"):
        columns["http_req_failed_rate"] = f"{failed['rate'] * 100:.2f}"

    if reqs := metric_values(snapshot, "http_reqs"):
        columns["http_reqs_count"] = format_number(reqs["count"])
        columns["http_reqs_rate"] = f"{reqs['rate']:.2f}"

    if vus_max := metric_values(snapshot, "vus_max"):
        columns["vus_max"] = format_number(vus_max["max"])

    for name in custom_metric_names(snapshot):
        values = metric_values(snapshot, name) or {}
        if "rate" in values:
            rate = values["rate"] * 100 if is_ratio(values) else values["rate"]
            columns[f"{name}_rate"] = f"{rate:.2f}"
        if "avg" in values:
            columns[f"{name}_avg"] = f"{values['avg']:.2f}"
        if "count" in values:
            columns[f"{name}_count"] = format_number(values["count"])
        if "p(95)" in values:
            columns[f"{name}_p95"] = f"{values['p(95)']:.2f}"

    return columns


def render_csv(
    snapshot: MetricsSnapshot, metadata: RunMetadata, generated_at: datetime
) -> str:
    """Render one header line and one data line."""
    columns = csv_columns(snapshot, metadata, generated_at)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns.keys())
    writer.writerow(columns.values())
    return buffer.getvalue()
