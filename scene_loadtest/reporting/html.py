"""HTML report rendered from a Jinja2 template."""

from collections.abc import Sequence
from datetime import datetime
from functools import cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from scene_loadtest.metrics import MetricsSnapshot
from scene_loadtest.models.result import ErrorLogEntry, RunMetadata
from scene_loadtest.reporting.snapshot import (
    custom_metric_names,
    format_custom_metric,
    format_number,
    is_ratio,
    metric_value,
    metric_values,
    run_duration_seconds,
)

TEMPLATE_DIR = Path(__file__).parent / "templates"
TEMPLATE_NAME = "report.html"

ERROR_RATE_LIMIT = 5.0


@cache
def template_environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(TEMPLATE_DIR),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_html(
    snapshot: MetricsSnapshot,
    metadata: RunMetadata,
    error_log: Sequence[ErrorLogEntry],
    generated_at: datetime,
) -> str:
    """Render the human-readable report of a run."""
    template = template_environment().get_template(TEMPLATE_NAME)
    return template.render(
        generated_at=generated_at.isoformat(),
        metadata=metadata,
        setting=metadata.test_setting,
        cards=_metric_cards(snapshot),
        custom_metrics=_custom_metrics(snapshot),
        error_log=error_log,
    )


def _metric_cards(snapshot: MetricsSnapshot) -> Sequence[tuple[str, str]]:
    return [
        (f"{run_duration_seconds(snapshot):.2f}s", "Test Duration"),
        (format_number(metric_value(snapshot, "vus_max", "max")), "Max Virtual Users"),
        (format_number(metric_value(snapshot, "http_reqs", "count")), "Total Requests"),
        (
            f"{metric_value(snapshot, 'http_req_failed', 'rate') * 100:.2f}%",
            "Failed Requests",
        ),
        (
            f"{metric_value(snapshot, 'http_req_duration', 'avg'):.2f}ms",
            "Avg Response Time",
        ),
        (
            f"{metric_value(snapshot, 'http_req_duration', 'p(95)'):.2f}ms",
            "95th Percentile",
        ),
    ]


def _custom_metrics(snapshot: MetricsSnapshot) -> Sequence[dict[str, Any]]:
    """Per-probe metrics as in the summary; error rates get a 5% verdict."""
    metrics = []
    for name in custom_metric_names(snapshot):
        values = metric_values(snapshot, name) or {}
        formatted = format_custom_metric(values)
        if formatted is None:
            continue
        passed = None
        if name.endswith("_errors") and is_ratio(values):
            passed = values["rate"] * 100 < ERROR_RATE_LIMIT
        metrics.append(
            {
                "label": name.replace("_", " ").upper(),
                "value": formatted,
                "passed": passed,
            }
        )
    return metrics
