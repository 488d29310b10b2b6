"""Tests for metrics utility."""

from __future__ import annotations

from emporium.utils.metrics import (
    MetricsCollector,
    record_dispatch,
    record_job_decided,
    record_job_submitted,
    to_prometheus_text,
)


class TestMetricsCollector:
    """Test the MetricsCollector class directly."""

    def test_increment_counter(self):
        mc = MetricsCollector()
        mc.increment_counter("test_counter")
        assert mc.get_counter("test_counter") == 1
        mc.increment_counter("test_counter")
        assert mc.get_counter("test_counter") == 2

    def test_counter_with_labels(self):
        mc = MetricsCollector()
        mc.increment_counter("jobs", labels={"status": "APPROVED"})
        mc.increment_counter("jobs", labels={"status": "REJECTED"})
        mc.increment_counter("jobs", labels={"status": "APPROVED"})
        assert mc.get_counter("jobs", labels={"status": "APPROVED"}) == 2
        assert mc.get_counter("jobs", labels={"status": "REJECTED"}) == 1

    def test_nonexistent_counter_zero(self):
        assert MetricsCollector().get_counter("nonexistent") == 0

    def test_observe_histogram(self):
        mc = MetricsCollector()
        for v in (1.5, 2.5, 3.0):
            mc.observe_histogram("duration", v)
        stats = mc.get_histogram_stats("duration")
        assert stats["count"] == 3
        assert stats["sum"] == 7.0
        assert stats["min"] == 1.5
        assert stats["max"] == 3.0

    def test_empty_histogram(self):
        assert MetricsCollector().get_histogram_stats("nonexistent")["count"] == 0

    def test_reset(self):
        mc = MetricsCollector()
        mc.increment_counter("x")
        mc.observe_histogram("y", 1.0)
        mc.reset()
        assert mc.get_all_metrics() == {"counters": {}, "histograms": {}}


class TestApprovalMetrics:
    def test_record_helpers(self):
        mc = MetricsCollector()
        record_job_submitted("PRODUCT", "DELETE", mc)
        record_job_decided("PRODUCT", "DELETE", "REJECTED", mc)
        record_dispatch("PRODUCT", "DELETE", 0.02, True, mc)

        kind = {"type": "PRODUCT", "operation": "DELETE"}
        assert mc.get_counter("approval_jobs_submitted_total", labels=kind) == 1
        assert mc.get_counter("approval_jobs_decided_total", labels={**kind, "outcome": "REJECTED"}) == 1
        assert mc.get_counter("approval_dispatch_failures_total", labels=kind) == 1
        assert mc.get_histogram_stats("approval_dispatch_seconds", labels=kind)["count"] == 1

    def test_prometheus_text(self):
        mc = MetricsCollector()
        record_job_submitted("CATEGORY", "CREATE", mc)
        record_job_submitted("PRODUCT", "CREATE", mc)
        record_dispatch("CATEGORY", "CREATE", 0.5, False, mc)

        text = to_prometheus_text(mc)
        assert text.count("# TYPE emporium_approval_jobs_submitted_total counter") == 1
        assert 'emporium_approval_jobs_submitted_total{operation="CREATE",type="CATEGORY"} 1' in text
        assert "# TYPE emporium_approval_dispatch_seconds summary" in text
        assert 'emporium_approval_dispatch_seconds_count{operation="CREATE",type="CATEGORY"} 1' in text
