"""Thread-safe counters, rates, trends and gauges with a k6-style snapshot."""

import math
import statistics
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any, Literal, TypeAlias, TypeVar

MetricType: TypeAlias = Literal["counter", "rate", "trend", "gauge"]
MetricsSnapshot: TypeAlias = Mapping[str, Any]


def percentile(values: list[float], pct: float) -> float:
    """Linear-interpolated percentile of ``values`` (0 for no values)."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = (len(ordered) - 1) * pct / 100
    low = math.floor(rank)
    high = math.ceil(rank)
    if low == high:
        return ordered[low]
    return ordered[low] + (ordered[high] - ordered[low]) * (rank - low)


class Metric(ABC):
    """Base class for a named metric."""

    type: MetricType
    contains: Literal["default", "time"] = "default"

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()

    @abstractmethod
    def values(self, elapsed: float) -> dict[str, float]:
        """Aggregate values for the snapshot."""


class Counter(Metric):
    """Cumulative sum, reported with a per-second rate."""

    type = "counter"

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._count: float = 0

    def add(self, value: float = 1) -> None:
        with self._lock:
            self._count += value

    def values(self, elapsed: float) -> dict[str, float]:
        with self._lock:
            count = self._count
        return {"count": count, "rate": count / elapsed if elapsed > 0 else 0.0}


class Rate(Metric):
    """Fraction of truthy samples."""

    type = "rate"

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._passes = 0
        self._fails = 0

    def add(self, value: bool) -> None:
        with self._lock:
            if value:
                self._passes += 1
            else:
                self._fails += 1

    def values(self, elapsed: float) -> dict[str, float]:
        with self._lock:
            passes, fails = self._passes, self._fails
        total = passes + fails
        return {
            "rate": passes / total if total else 0.0,
            "passes": passes,
            "fails": fails,
        }


class Trend(Metric):
    """Distribution of samples, typically durations in milliseconds."""

    type = "trend"

    def __init__(self, name: str, *, is_time: bool = True) -> None:
        super().__init__(name)
        self.contains = "time" if is_time else "default"
        self._samples: list[float] = []

    def add(self, value: float) -> None:
        with self._lock:
            self._samples.append(value)

    def values(self, elapsed: float) -> dict[str, float]:
        with self._lock:
            samples = list(self._samples)
        if not samples:
            return dict.fromkeys(("avg", "min", "med", "max", "p(90)", "p(95)"), 0.0)
        return {
            "avg": statistics.fmean(samples),
            "min": min(samples),
            "med": statistics.median(samples),
            "max": max(samples),
            "p(90)": percentile(samples, 90),
            "p(95)": percentile(samples, 95),
        }


class Gauge(Metric):
    """Last value, with the extremes seen."""

    type = "gauge"

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self._value = 0.0
        self._min = math.inf
        self._max = -math.inf

    def set(self, value: float) -> None:
        with self._lock:
            self._value = value
            self._min = min(self._min, value)
            self._max = max(self._max, value)

    def values(self, elapsed: float) -> dict[str, float]:
        with self._lock:
            if self._max == -math.inf:
                return {"value": 0.0, "min": 0.0, "max": 0.0}
            return {"value": self._value, "min": self._min, "max": self._max}


M = TypeVar("M", bound=Metric)


class MetricsRegistry:
    """Registry of named metrics shared by every worker of a run."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started = clock()
        self._lock = threading.Lock()
        self._metrics: dict[str, Metric] = {}

    def counter(self, name: str) -> Counter:
        return self._get(name, Counter)

    def rate(self, name: str) -> Rate:
        return self._get(name, Rate)

    def trend(self, name: str) -> Trend:
        return self._get(name, Trend)

    def gauge(self, name: str) -> Gauge:
        return self._get(name, Gauge)

    def _get(self, name: str, cls: type[M]) -> M:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = cls(name)
        if not isinstance(metric, cls):
            raise TypeError(
                f"Metric '{name}' is a {metric.type}, not a {cls.type}"
            )
        return metric

    def snapshot(self) -> MetricsSnapshot:
        """Return the aggregate of all metrics collected so far."""
        elapsed = self._clock() - self._started
        with self._lock:
            metrics = dict(self._metrics)
        return {
            "state": {"testRunDurationMs": elapsed * 1000},
            "metrics": {
                name: {
                    "type": metric.type,
                    "contains": metric.contains,
                    "values": metric.values(elapsed),
                }
                for name, metric in sorted(metrics.items())
            },
        }


def record_probe(
    registry: MetricsRegistry, prefix: str, *, success: bool, duration_ms: float
) -> None:
    """Record the error rate, response time and request count of a probe."""
    registry.rate(f"{prefix}_errors").add(not success)
    registry.trend(f"{prefix}_response_time").add(duration_ms)
    registry.counter(f"{prefix}_requests").add(1)
