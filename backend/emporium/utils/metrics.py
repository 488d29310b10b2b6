"""
Basic in-memory metrics counters for the approval workflow.

- approval_jobs_submitted_total: Counter of submitted jobs by type/operation
- approval_jobs_decided_total: Counter of decisions by type/operation/outcome
- approval_dispatch_failures_total: Counter of approvals rolled back by a failed dispatch
- approval_dispatch_seconds: Histogram of dispatched call durations
"""
import re as _re
from collections import defaultdict
from typing import Any
import logging

logger = logging.getLogger("emporium.metrics")


class MetricsCollector:
    """Simple in-memory metrics collector."""

    def __init__(self):
        self.counters: dict[str, int] = defaultdict(int)
        self.histograms: dict[str, list[float]] = defaultdict(list)

    def increment_counter(self, name: str, value: int = 1, labels: dict[str, str] | None = None):
        """Increment a counter metric."""
        key = self._build_key(name, labels)
        self.counters[key] += value

    def observe_histogram(self, name: str, value: float, labels: dict[str, str] | None = None):
        """Record a histogram observation."""
        key = self._build_key(name, labels)
        self.histograms[key].append(value)

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Get current counter value."""
        key = self._build_key(name, labels)
        return self.counters.get(key, 0)

    def get_histogram_stats(self, name: str, labels: dict[str, str] | None = None) -> dict[str, Any]:
        """Get histogram statistics (count, sum, min, max, avg, p95)."""
        key = self._build_key(name, labels)
        values = self.histograms.get(key, [])

        if not values:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "avg": 0, "p95": 0}

        sorted_vals = sorted(values)
        n = len(sorted_vals)
        p95_idx = max(0, int(n * 0.95) - 1)
        return {
            "count": n,
            "sum": sum(sorted_vals),
            "min": sorted_vals[0],
            "max": sorted_vals[-1],
            "avg": sum(sorted_vals) / n,
            "p95": sorted_vals[p95_idx],
        }

    def get_all_metrics(self) -> dict[str, Any]:
        """Get all metrics as a dictionary."""
        return {
            "counters": dict(self.counters),
            "histograms": {k: self.get_histogram_stats(k) for k in self.histograms.keys()},
        }

    def reset(self):
        """Reset all metrics."""
        self.counters.clear()
        self.histograms.clear()

    @staticmethod
    def _build_key(name: str, labels: dict[str, str] | None) -> str:
        """Build metric key from name and labels."""
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


# Global metrics collector instance
metrics = MetricsCollector()


def _kind_labels(entity_type: str, operation: str) -> dict[str, str]:
    return {"type": entity_type, "operation": operation}


def record_job_submitted(entity_type: str, operation: str, collector: MetricsCollector | None = None):
    """Record a newly submitted approval job."""
    (collector or metrics).increment_counter(
        "approval_jobs_submitted_total", labels=_kind_labels(entity_type, operation)
    )


def record_job_decided(
    entity_type: str,
    operation: str,
    outcome: str,
    collector: MetricsCollector | None = None,
):
    """
    Record a committed decision.

    Args:
        entity_type: Governed entity type (CATEGORY, PRODUCT)
        operation: Governed operation (CREATE, UPDATE, DELETE)
        outcome: APPROVED or REJECTED
    """
    labels = _kind_labels(entity_type, operation)
    labels["outcome"] = outcome
    (collector or metrics).increment_counter("approval_jobs_decided_total", labels=labels)


def record_dispatch(
    entity_type: str,
    operation: str,
    duration_seconds: float,
    failed: bool,
    collector: MetricsCollector | None = None,
):
    """Record one dispatched call, successful or not."""
    target = collector or metrics
    labels = _kind_labels(entity_type, operation)
    target.observe_histogram("approval_dispatch_seconds", duration_seconds, labels=labels)
    if failed:
        target.increment_counter("approval_dispatch_failures_total", labels=labels)


def _parse_metric_key(key: str) -> tuple[str, str]:
    """Split an internal metric key into (base_name, prometheus_label_string).

    Internal keys look like ``name`` or ``name{k1=v1,k2=v2}`` (values unquoted);
    the label string comes back quoted, e.g. ``{operation="CREATE",type="PRODUCT"}``,
    or empty when there are no labels.
    """
    m = _re.match(r'^([^{]+)(?:\{(.+)\})?$', key)
    if not m:
        return key, ""
    base_name = m.group(1)
    raw_labels = m.group(2) or ""
    if not raw_labels:
        return base_name, ""
    label_parts: list[str] = []
    for pair in raw_labels.split(","):
        if "=" in pair:
            k, v = pair.split("=", 1)
            label_parts.append(f'{k.strip()}="{v.strip()}"')
    label_str = "{" + ",".join(label_parts) + "}" if label_parts else ""
    return base_name, label_str


def _append_quantile_label(label_str: str, quantile: str) -> str:
    """Merge a quantile key-value into an existing Prometheus label block."""
    q_pair = f'quantile="{quantile}"'
    if label_str:
        return label_str[:-1] + "," + q_pair + "}"
    return "{" + q_pair + "}"


def to_prometheus_text(collector: MetricsCollector | None = None) -> str:
    """Render all in-memory metrics as Prometheus text exposition format.

    Each metric family gets exactly one ``# TYPE`` line; histograms are
    rendered as summaries (count, sum, p95, max).
    """
    source = collector or metrics
    summary = source.get_all_metrics()
    lines: list[str] = []

    counter_families: dict[str, list[tuple[str, int]]] = defaultdict(list)
    for key, val in summary.get("counters", {}).items():
        base_name, label_str = _parse_metric_key(key)
        counter_families["emporium_" + base_name].append((label_str, val))
    for prom_name, entries in counter_families.items():
        lines.append(f"# TYPE {prom_name} counter")
        for label_str, val in entries:
            lines.append(f"{prom_name}{label_str} {val}")

    histogram_families: dict[str, list[tuple[str, dict]]] = defaultdict(list)
    for key, stats in summary.get("histograms", {}).items():
        base_name, label_str = _parse_metric_key(key)
        histogram_families["emporium_" + base_name].append((label_str, stats))
    for prom_name, entries in histogram_families.items():
        lines.append(f"# TYPE {prom_name} summary")
        for label_str, stats in entries:
            lines.append(f"{prom_name}_count{label_str} {stats['count']}")
            lines.append(f"{prom_name}_sum{label_str} {stats['sum']:.6f}")
            if stats["count"]:
                lines.append(f"{prom_name}{_append_quantile_label(label_str, '0.95')} {stats['p95']:.6f}")
                lines.append(f"{prom_name}{_append_quantile_label(label_str, '1.0')} {stats['max']:.6f}")
    return "\n".join(lines) + "\n"
