"""
Metrics Collection - Monitoring Layer

Provides Prometheus-compatible metrics for the storage layer:
- Counters (monotonically increasing)
- Gauges (can go up or down)
- Histograms (distribution of values)

@.architecture
Incoming: storage/local.py, monitoring/health.py --- {str metric_name, float value, Dict[str, str] labels, metric recording calls}
Processing: inc(), set(), observe(), export_prometheus() --- {4 jobs: collection, export, metric_creation, recording}
Outgoing: scripts/health_check.py, Scrapers --- {Counter/Gauge/Histogram instances, Dict[str, Any] collected metrics, str Prometheus format}
"""

import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple


class _LabeledMetric:
    """Label handling shared by all metric kinds."""

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        self.name = name
        self.help_text = help_text
        self.label_names = labels or []
        self._lock = threading.Lock()

    def _validate_labels(self, labels: Dict[str, str]) -> Tuple[str, ...]:
        """Validate and order labels."""
        if set(labels.keys()) != set(self.label_names):
            raise ValueError(f"Expected labels {self.label_names}, got {list(labels.keys())}")
        return tuple(str(labels[name]) for name in self.label_names)


class Counter(_LabeledMetric):
    """
    Counter metric - monotonically increasing value.

    Use for: operation counts, error counts, bytes written, etc.
    """

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        super().__init__(name, help_text, labels)
        self._values: Dict[Tuple[str, ...], float] = defaultdict(float)

    def inc(self, value: float = 1.0, **labels: str) -> None:
        """
        Increment counter.

        Args:
            value: Amount to increment (must be >= 0)
            **labels: Label values
        """
        if value < 0:
            raise ValueError("Counter can only be incremented by non-negative values")

        label_values = self._validate_labels(labels)

        with self._lock:
            self._values[label_values] += value

    def get(self, **labels: str) -> float:
        """Get counter value for a label set."""
        label_values = self._validate_labels(labels)
        with self._lock:
            return self._values.get(label_values, 0.0)

    def collect(self) -> List[Tuple[Dict[str, str], float]]:
        """
        Collect all metric values for export.

        Returns:
            List of (label_dict, value) tuples
        """
        with self._lock:
            return [
                (dict(zip(self.label_names, label_values)), value)
                for label_values, value in self._values.items()
            ]


class Gauge(_LabeledMetric):
    """
    Gauge metric - can go up or down.

    Use for: free disk space.
    """

    def __init__(self, name: str, help_text: str, labels: Optional[List[str]] = None):
        super().__init__(name, help_text, labels)
        self._values: Dict[Tuple[str, ...], float] = defaultdict(float)

    def set(self, value: float, **labels: str) -> None:
        """Set gauge value."""
        label_values = self._validate_labels(labels)
        with self._lock:
            self._values[label_values] = value

    def get(self, **labels: str) -> float:
        """Get gauge value for a label set."""
        label_values = self._validate_labels(labels)
        with self._lock:
            return self._values.get(label_values, 0.0)

    def collect(self) -> List[Tuple[Dict[str, str], float]]:
        """Collect all metric values for export."""
        with self._lock:
            return [
                (dict(zip(self.label_names, label_values)), value)
                for label_values, value in self._values.items()
            ]


class Histogram(_LabeledMetric):
    """
    Histogram metric - distribution of values into buckets.

    Use for: operation duration, payload size, etc.
    """

    # Default buckets for operation time (seconds)
    DEFAULT_BUCKETS = [0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]

    def __init__(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ):
        """
        Initialize histogram.

        Args:
            name: Metric name
            help_text: Description
            labels: Label names for metric dimensions
            buckets: Bucket boundaries (sorted on init)
        """
        super().__init__(name, help_text, labels)
        self.buckets = sorted(buckets or self.DEFAULT_BUCKETS)

        self._bucket_counts: Dict[Tuple[str, ...], List[int]] = defaultdict(
            lambda: [0] * (len(self.buckets) + 1)
        )
        self._sum: Dict[Tuple[str, ...], float] = defaultdict(float)
        self._count: Dict[Tuple[str, ...], int] = defaultdict(int)

    def observe(self, value: float, **labels: str) -> None:
        """Observe a value."""
        label_values = self._validate_labels(labels)

        with self._lock:
            self._sum[label_values] += value
            self._count[label_values] += 1

            bucket_counts = self._bucket_counts[label_values]
            for i, bucket in enumerate(self.buckets):
                if value <= bucket:
                    bucket_counts[i] += 1
            # +Inf bucket
            bucket_counts[-1] += 1

    def get_stats(self, **labels: str) -> Dict[str, Any]:
        """
        Get histogram statistics.

        Returns:
            Dict with count, sum, average, buckets
        """
        label_values = self._validate_labels(labels)
        with self._lock:
            return self._stats(label_values)

    def _stats(self, label_values: Tuple[str, ...]) -> Dict[str, Any]:
        # Caller holds the lock
        count = self._count.get(label_values, 0)
        sum_value = self._sum.get(label_values, 0.0)
        bucket_counts = self._bucket_counts.get(label_values, [0] * (len(self.buckets) + 1))

        return {
            'count': count,
            'sum': sum_value,
            'average': sum_value / count if count > 0 else 0.0,
            'buckets': dict(zip([*self.buckets, float('inf')], bucket_counts)),
        }

    def collect(self) -> List[Tuple[Dict[str, str], Dict[str, Any]]]:
        """Collect all histogram data for export."""
        with self._lock:
            return [
                (dict(zip(self.label_names, label_values)), self._stats(label_values))
                for label_values in list(self._count.keys())
            ]


class MetricsRegistry:
    """
    Central registry for all metrics.

    Manages metric creation and collection for export.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, Counter] = {}
        self._gauges: Dict[str, Gauge] = {}
        self._histograms: Dict[str, Histogram] = {}

    def counter(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Counter:
        """Get or create counter metric."""
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, help_text, labels)
            return self._counters[name]

    def gauge(self, name: str, help_text: str, labels: Optional[List[str]] = None) -> Gauge:
        """Get or create gauge metric."""
        with self._lock:
            if name not in self._gauges:
                self._gauges[name] = Gauge(name, help_text, labels)
            return self._gauges[name]

    def histogram(
        self,
        name: str,
        help_text: str,
        labels: Optional[List[str]] = None,
        buckets: Optional[List[float]] = None
    ) -> Histogram:
        """Get or create histogram metric."""
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name, help_text, labels, buckets)
            return self._histograms[name]

    def export_prometheus(self) -> str:
        """
        Export metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        for name, metric in self._counters.items():
            lines.append(f"# HELP {name} {metric.help_text}")
            lines.append(f"# TYPE {name} counter")
            for label_dict, value in metric.collect():
                lines.append(f"{name}{self._format_labels(label_dict)} {value}")

        for name, metric in self._gauges.items():
            lines.append(f"# HELP {name} {metric.help_text}")
            lines.append(f"# TYPE {name} gauge")
            for label_dict, value in metric.collect():
                lines.append(f"{name}{self._format_labels(label_dict)} {value}")

        for name, metric in self._histograms.items():
            lines.append(f"# HELP {name} {metric.help_text}")
            lines.append(f"# TYPE {name} histogram")
            for label_dict, stats in metric.collect():
                label_str = self._format_labels(label_dict)
                for bucket, count in stats['buckets'].items():
                    bucket_label = dict(label_dict, le="+Inf" if bucket == float('inf') else str(bucket))
                    lines.append(f"{name}_bucket{self._format_labels(bucket_label)} {count}")
                lines.append(f"{name}_sum{label_str} {stats['sum']}")
                lines.append(f"{name}_count{label_str} {stats['count']}")

        return '\n'.join(lines) + '\n'

    def _format_labels(self, labels: Dict[str, str]) -> str:
        """Format labels for Prometheus output."""
        if not labels:
            return ""
        label_pairs = [f'{k}="{v}"' for k, v in labels.items()]
        return "{" + ",".join(label_pairs) + "}"


# Global registry instance
_global_registry: Optional[MetricsRegistry] = None


def get_registry() -> MetricsRegistry:
    """Get global metrics registry."""
    global _global_registry
    if _global_registry is None:
        _global_registry = MetricsRegistry()
    return _global_registry


def setup_storage_metrics(registry: Optional[MetricsRegistry] = None) -> Dict[str, Any]:
    """
    Create the storage layer metrics.

    Args:
        registry: Registry to declare the metrics in (global if None)

    Returns:
        Dict of metric objects
    """
    registry = registry or get_registry()

    return {
        'operations_total': registry.counter(
            'flowstore_storage_operations_total',
            'Total storage operations',
            labels=['operation', 'status']
        ),
        'operation_duration_seconds': registry.histogram(
            'flowstore_storage_operation_duration_seconds',
            'Storage operation duration in seconds',
            labels=['operation']
        ),
        'bytes_written_total': registry.counter(
            'flowstore_storage_bytes_written_total',
            'Total bytes written by put'
        ),
        'files_deleted_total': registry.counter(
            'flowstore_storage_files_deleted_total',
            'Total files removed by delete operations'
        ),
        'disk_free_bytes': registry.gauge(
            'flowstore_storage_disk_free_bytes',
            'Free bytes on the storage volume'
        ),
    }
