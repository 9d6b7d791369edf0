"""Read helpers over a k6-style metrics snapshot."""

from collections.abc import Mapping, Sequence
from typing import Any

from scene_loadtest.metrics import MetricsSnapshot

CUSTOM_METRIC_MARKERS = ("_errors", "_response_time", "_requests")


def metric_values(snapshot: MetricsSnapshot, name: str) -> Mapping[str, Any] | None:
    """Return the aggregate values of a metric, or None if it was never recorded."""
    metric = snapshot.get("metrics", {}).get(name)
    if metric is None:
        return None
    return metric["values"]


def metric_value(
    snapshot: MetricsSnapshot, name: str, field: str, default: float = 0
) -> Any:
    values = metric_values(snapshot, name)
    if values is None:
        return default
    return values.get(field, default)


def custom_metric_names(snapshot: MetricsSnapshot) -> Sequence[str]:
    """Names of per-probe metrics, in snapshot order."""
    return [
        name
        for name in snapshot.get("metrics", {})
        if any(marker in name for marker in CUSTOM_METRIC_MARKERS)
    ]


def is_ratio(values: Mapping[str, Any]) -> bool:
    """True for rate metrics; a counter's ``rate`` is per-second throughput."""
    return "rate" in values and "count" not in values


def run_duration_seconds(snapshot: MetricsSnapshot) -> float:
    return snapshot.get("state", {}).get("testRunDurationMs", 0) / 1000


def format_number(value: float) -> str:
    """Render whole numbers without decimals and others with two."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.2f}"


def format_custom_metric(values: Mapping[str, Any]) -> str | None:
    """Render a per-probe metric as a percentage, milliseconds or a count."""
    if is_ratio(values):
        return f"{values['rate'] * 100:.2f}%"
    if "avg" in values:
        return f"{values['avg']:.2f}ms"
    if "count" in values:
        return format_number(values["count"])
    return None
