"""Plain-text run summary for the console."""

from datetime import datetime

from scene_loadtest.metrics import MetricsSnapshot
from scene_loadtest.models.result import RunMetadata
from scene_loadtest.reporting.snapshot import (
    custom_metric_names,
    format_custom_metric,
    format_number,
    metric_value,
    metric_values,
    run_duration_seconds,
)

RULE = "=" * 50
SUBRULE = "-" * 30


def render_summary(
    snapshot: MetricsSnapshot, metadata: RunMetadata, generated_at: datetime
) -> str:
    """Render the fixed-order text summary of a run."""
    setting = metadata.test_setting
    end_time = metadata.test_end_time.isoformat() if metadata.test_end_time else "-"
    lines = [
        "",
        "📊 LOAD TEST SUMMARY",
        RULE,
        f"🕐 Generated: {generated_at.isoformat()}",
        f"🎬 Scene: {metadata.scene} | Test: {metadata.test_name}",
        f"⚙️  Setting: {metadata.test_setting_name} - {setting.description}",
        f"🌍 Environment: {metadata.environment}",
        f"⏰ Started: {metadata.test_start_time.isoformat()} | Ended: {end_time}",
        f"⏱️  Duration: {run_duration_seconds(snapshot):.2f}s",
        f"👥 Max VUs: {format_number(metric_value(snapshot, 'vus_max', 'max'))}",
        "",
        "📈 HTTP METRICS",
        SUBRULE,
        f"Total Requests: {format_number(metric_value(snapshot, 'http_reqs', 'count'))}",
        f"Failed Requests: {metric_value(snapshot, 'http_req_failed', 'rate') * 100:.2f}%",
        f"Avg Response Time: {metric_value(snapshot, 'http_req_duration', 'avg'):.2f}ms",
        f"95th Percentile: {metric_value(snapshot, 'http_req_duration', 'p(95)'):.2f}ms",
        "",
    ]

    custom = custom_metric_names(snapshot)
    if custom:
        lines += ["🎯 CUSTOM METRICS", SUBRULE]
        for name in custom:
            formatted = format_custom_metric(metric_values(snapshot, name) or {})
            if formatted is not None:
                lines.append(f"{name}: {formatted}")

    lines += ["", RULE, ""]
    return "\n".join(lines)
