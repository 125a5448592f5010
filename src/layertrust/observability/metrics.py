"""layertrust Metrics Collection.

Prometheus-compatible, in-process counters and histograms for signing,
verification and trust store activity. Exporting them over HTTP is left
to the embedding service; ``export_prometheus()`` renders the text format.

Example:
    >>> from layertrust.observability.metrics import get_metrics
    >>> metrics = get_metrics()
    >>> metrics.increment_counter("layertrust_verifications_total", {"outcome": "verified"})
    >>> print(metrics.export_prometheus())
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import ClassVar

LabelKey = tuple[tuple[str, str], ...]


def _label_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


@dataclass
class Counter:
    """A monotonically increasing counter metric."""

    name: str
    help_text: str
    values: dict[LabelKey, float] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def increment(self, labels: dict[str, str] | None = None, value: float = 1.0) -> None:
        label_key = _label_key(labels)
        with self._lock:
            self.values[label_key] = self.values.get(label_key, 0.0) + value

    def get(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            return self.values.get(_label_key(labels), 0.0)


DEFAULT_LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)


@dataclass
class _HistogramSeries:
    buckets: dict[float, float]
    sum: float = 0.0
    count: float = 0.0


@dataclass
class Histogram:
    """A histogram metric for measuring distributions."""

    name: str
    help_text: str
    buckets: tuple[float, ...] = DEFAULT_LATENCY_BUCKETS
    values: dict[LabelKey, _HistogramSeries] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def observe(self, value: float, labels: dict[str, str] | None = None) -> None:
        label_key = _label_key(labels)
        with self._lock:
            series = self.values.get(label_key)
            if series is None:
                series = _HistogramSeries(buckets=dict.fromkeys(self.buckets, 0.0))
                self.values[label_key] = series
            for bound in self.buckets:
                if value <= bound:
                    series.buckets[bound] += 1.0
            series.sum += value
            series.count += 1.0

    def get_count(self, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            series = self.values.get(_label_key(labels))
            return series.count if series is not None else 0.0


class MetricsCollector:
    """Collects and exports metrics in Prometheus format.

    Thread-safe; unknown metric names are ignored on write and read as zero.
    """

    DEFAULT_COUNTERS: ClassVar[dict[str, str]] = {
        "layertrust_verifications_total": "Total number of chain verifications by outcome",
        "layertrust_chain_layers_walked_total": "Total number of layers checked during chain walks",
        "layertrust_layers_signed_total": "Total number of layers built and signed",
        "layertrust_certifications_total": "Total number of certification records issued",
        "layertrust_certification_checks_total": "Total number of certification cross-checks",
        "layertrust_trust_store_changes_total": "Total number of trust store additions/removals",
    }

    DEFAULT_HISTOGRAMS: ClassVar[dict[str, str]] = {
        "layertrust_verification_duration_seconds": "Chain verification duration in seconds",
        "layertrust_signing_duration_seconds": "Layer hashing and signing duration in seconds",
    }

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        self._start_time = time.time()

        for name, help_text in self.DEFAULT_COUNTERS.items():
            self._counters[name] = Counter(name=name, help_text=help_text)

        for name, help_text in self.DEFAULT_HISTOGRAMS.items():
            self._histograms[name] = Histogram(name=name, help_text=help_text)

    def increment_counter(
        self, name: str, labels: dict[str, str] | None = None, value: float = 1.0
    ) -> None:
        with self._lock:
            counter = self._counters.get(name)
        if counter is not None:
            counter.increment(labels, value)

    def observe_histogram(
        self, name: str, value: float, labels: dict[str, str] | None = None
    ) -> None:
        with self._lock:
            histogram = self._histograms.get(name)
        if histogram is not None:
            histogram.observe(value, labels)

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            counter = self._counters.get(name)
        return counter.get(labels) if counter is not None else 0.0

    def get_histogram_count(self, name: str, labels: dict[str, str] | None = None) -> float:
        with self._lock:
            histogram = self._histograms.get(name)
        return histogram.get_count(labels) if histogram is not None else 0.0

    @staticmethod
    def _format_labels(labels: LabelKey, extra: str | None = None) -> str:
        def escape_label_value(value: str) -> str:
            return value.replace("\\", "\\\\").replace('"', '\\"')

        parts = [f'{k}="{escape_label_value(v)}"' for k, v in labels]
        if extra is not None:
            parts.append(extra)
        if not parts:
            return ""
        return "{" + ",".join(parts) + "}"

    def export_prometheus(self) -> str:
        """Export all metrics in Prometheus text exposition format."""
        lines: list[str] = []

        with self._lock:
            counters = list(self._counters.values())
            histograms = list(self._histograms.values())

        for counter in counters:
            lines.append(f"# HELP {counter.name} {counter.help_text}")
            lines.append(f"# TYPE {counter.name} counter")
            with counter._lock:
                items = list(counter.values.items())
            if not items:
                lines.append(f"{counter.name} 0")
            for label_key, value in items:
                lines.append(f"{counter.name}{self._format_labels(label_key)} {value}")

        for histogram in histograms:
            lines.append(f"# HELP {histogram.name} {histogram.help_text}")
            lines.append(f"# TYPE {histogram.name} histogram")
            with histogram._lock:
                series_items = [
                    (k, dict(s.buckets), s.sum, s.count) for k, s in histogram.values.items()
                ]
            if not series_items:
                series_items = [((), dict.fromkeys(histogram.buckets, 0.0), 0.0, 0.0)]
            for label_key, buckets, total, count in series_items:
                cumulative = 0.0
                for bound in histogram.buckets:
                    cumulative += buckets.get(bound, 0.0)
                    label_str = self._format_labels(label_key, f'le="{bound}"')
                    lines.append(f"{histogram.name}_bucket{label_str} {cumulative}")
                label_str = self._format_labels(label_key, 'le="+Inf"')
                lines.append(f"{histogram.name}_bucket{label_str} {count}")
                base_labels = self._format_labels(label_key)
                lines.append(f"{histogram.name}_sum{base_labels} {total}")
                lines.append(f"{histogram.name}_count{base_labels} {count}")

        uptime = time.time() - self._start_time
        lines.append("# HELP layertrust_process_uptime_seconds Time since collector start")
        lines.append("# TYPE layertrust_process_uptime_seconds gauge")
        lines.append(f"layertrust_process_uptime_seconds {uptime:.3f}")

        return "\n".join(lines) + "\n"

    def reset(self) -> None:
        """Reset all metrics to zero. Useful for testing."""
        with self._lock:
            for counter in self._counters.values():
                with counter._lock:
                    counter.values.clear()
            for histogram in self._histograms.values():
                with histogram._lock:
                    histogram.values.clear()


_metrics_collector: MetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics() -> MetricsCollector:
    """Get the process-wide metrics collector instance."""
    global _metrics_collector
    with _collector_lock:
        if _metrics_collector is None:
            _metrics_collector = MetricsCollector()
        return _metrics_collector


def reset_metrics() -> None:
    """Reset the global metrics collector. Useful for testing."""
    with _collector_lock:
        if _metrics_collector is not None:
            _metrics_collector.reset()
