"""Unit tests for MetricsCollector."""

import pytest

from valhalla_mcp.monitoring.metrics import Counter, MetricsCollector, RequestMetric


def metric(duration=100.0, success=True, endpoint="/route", method="POST", **kwargs):
    return RequestMetric(endpoint=endpoint, method=method, duration=duration, success=success, **kwargs)


class TestCounter:
    def test_inc_by_labels(self):
        counter = Counter("lookups", "Cache lookups")
        counter.inc(result="hit")
        counter.inc(result="hit")
        counter.inc(result="miss")

        assert counter.get(result="hit") == 2
        assert counter.get(result="miss") == 1
        assert counter.get(result="other") == 0


class TestSummary:
    """Test summary statistics over the retained history."""

    def test_empty_summary(self):
        summary = MetricsCollector().get_summary()

        assert summary.total == 0
        assert summary.error_rate == 0
        assert summary.average_response_time == 0
        assert summary.p95_response_time == 0
        assert summary.cache_hit_rate == 0
        assert summary.endpoints == {}

    def test_counts_and_error_rate(self):
        collector = MetricsCollector()
        for i in range(8):
            collector.record_request(metric(success=i % 4 != 0))

        summary = collector.get_summary()

        assert summary.total == 8
        assert summary.successful == 6
        assert summary.failed == 2
        assert summary.error_rate == pytest.approx(0.25)

    def test_response_time_statistics(self):
        collector = MetricsCollector()
        for duration in [300, 100, 1000, 200, 500, 400, 700, 600, 900, 800]:
            collector.record_request(metric(duration=float(duration)))

        summary = collector.get_summary()

        assert summary.average_response_time == pytest.approx(550)
        assert summary.min_response_time == 100
        assert summary.max_response_time == 1000
        # floor(0.95 * 10) = 9 -> the maximum
        assert summary.p95_response_time == 1000

    def test_p95_on_twenty_values(self):
        collector = MetricsCollector()
        for duration in range(1, 21):
            collector.record_request(metric(duration=float(duration)))

        # floor(0.95 * 20) = 19 -> 20th value
        assert collector.get_summary().p95_response_time == 20

    def test_single_value(self):
        collector = MetricsCollector()
        collector.record_request(metric(duration=42.0))

        summary = collector.get_summary()

        assert summary.p95_response_time == 42
        assert summary.min_response_time == summary.max_response_time == 42

    def test_cache_hit_rate(self):
        collector = MetricsCollector()
        collector.record_cache_hit()
        collector.record_cache_hit()
        collector.record_cache_hit()
        collector.record_cache_miss()

        summary = collector.get_summary()

        assert summary.cache_hits == 3
        assert summary.cache_misses == 1
        assert summary.cache_hit_rate == pytest.approx(0.75)

    def test_per_endpoint_stats(self):
        collector = MetricsCollector()
        collector.record_request(metric(duration=100.0, endpoint="/route"))
        collector.record_request(metric(duration=300.0, endpoint="/route", success=False))
        collector.record_request(metric(duration=50.0, endpoint="/status", method="GET"))

        endpoints = collector.get_summary().endpoints

        assert set(endpoints) == {"POST /route", "GET /status"}
        assert endpoints["POST /route"].count == 2
        assert endpoints["POST /route"].average_time == pytest.approx(200.0)
        assert endpoints["POST /route"].error_count == 1
        assert endpoints["GET /status"].error_count == 0

    def test_total_tracks_record_calls(self):
        collector = MetricsCollector()
        for _ in range(37):
            collector.record_request(metric())

        assert collector.get_summary().total == 37

    def test_to_dict_shape(self):
        collector = MetricsCollector()
        collector.record_request(metric())

        data = collector.get_summary().to_dict()

        assert set(data) == {"requests", "performance", "cache", "endpoints", "last_reset"}
        assert data["endpoints"]["POST /route"]["count"] == 1


class TestHistoryBound:
    def test_fifo_eviction(self):
        collector = MetricsCollector(max_history=5)
        for i in range(8):
            collector.record_request(metric(duration=float(i)))

        history = collector.history

        assert len(history) == 5
        assert [m.duration for m in history] == [3.0, 4.0, 5.0, 6.0, 7.0]
        assert collector.get_summary().total == 5


class TestHealthStatus:
    """Test the health verdict over the recent window."""

    def test_healthy(self):
        collector = MetricsCollector()
        for _ in range(50):
            collector.record_request(metric(duration=200.0))

        health = collector.get_health_status()

        assert health.status == "healthy"
        assert all(health.checks.values())
        assert health.details == []

    def test_degraded_on_error_rate(self):
        collector = MetricsCollector()
        for i in range(50):
            collector.record_request(metric(duration=200.0, success=i >= 6))

        health = collector.get_health_status()

        assert health.status == "degraded"
        assert health.checks == {"error_rate": False, "response_time": True, "has_recent_activity": True}
        assert health.details == ["High error rate: 12.0%"]

    def test_unhealthy_on_errors_and_latency(self):
        collector = MetricsCollector()
        for i in range(50):
            collector.record_request(metric(duration=6000.0, success=i % 2 == 0))

        health = collector.get_health_status()

        assert health.status == "unhealthy"
        assert len(health.details) == 2

    def test_no_activity_is_degraded(self):
        health = MetricsCollector().get_health_status()

        assert health.status == "degraded"
        assert health.checks["has_recent_activity"] is False
        assert health.details == ["No recent activity"]

    def test_only_recent_window_counts(self):
        collector = MetricsCollector()
        for _ in range(100):
            collector.record_request(metric(success=False))
        for _ in range(50):
            collector.record_request(metric(success=True))

        assert collector.get_health_status().status == "healthy"
        assert collector.get_summary().error_rate == pytest.approx(100 / 150)


class TestDerivedViews:
    def test_recent_errors_most_recent_first(self):
        collector = MetricsCollector()
        for i in range(6):
            collector.record_request(metric(success=False, request_id=f"req-{i}"))
            collector.record_request(metric(success=True))

        errors = collector.get_recent_errors(limit=3)

        assert [e.request_id for e in errors] == ["req-5", "req-4", "req-3"]
        assert collector.get_summary().total == 12

    def test_slowest_requests(self):
        collector = MetricsCollector()
        for duration in [5.0, 50.0, 1.0, 500.0]:
            collector.record_request(metric(duration=duration))

        slowest = collector.get_slowest_requests(limit=2)

        assert [m.duration for m in slowest] == [500.0, 50.0]
        assert [m.duration for m in collector.history] == [5.0, 50.0, 1.0, 500.0]


class TestReset:
    def test_reset_clears_state(self):
        collector = MetricsCollector()
        collector.record_request(metric())
        collector.record_cache_hit()
        collector.record_cache_miss()
        before = collector.get_summary().last_reset

        collector.reset()
        summary = collector.get_summary()

        assert summary.total == 0
        assert summary.cache_hits == 0
        assert summary.cache_misses == 0
        assert summary.last_reset >= before
