"""
Unit tests for Prometheus metrics.

Usage:
    pytest tests/unit/infrastructure/test_metrics.py
"""

import pytest
from prometheus_client import generate_latest


class TestMetrics:
    """Unit tests for Metrics."""

    def test_record_http_request(self, metrics, registry):
        """Test one request increments the counter and observes a duration."""
        metrics.record_http_request("GET", "/health", "200", 0.25)

        assert (
            registry.get_sample_value(
                "http_requests_total",
                {"method": "GET", "endpoint": "/health", "status_code": "200"},
            )
            == 1.0
        )
        assert registry.get_sample_value(
            "http_request_duration_seconds_sum",
            {"method": "GET", "endpoint": "/health"},
        ) == pytest.approx(0.25)

    def test_record_database_query(self, metrics, registry):
        metrics.record_database_query("health_check", 0.01)
        metrics.record_database_query("health_check", 0.02)

        assert (
            registry.get_sample_value(
                "database_query_duration_seconds_count",
                {"query_type": "health_check"},
            )
            == 2.0
        )

    def test_gauges(self, metrics, registry):
        metrics.active_requests.inc()
        metrics.database_connections_active.set(3)

        assert registry.get_sample_value("active_requests") == 1.0
        assert registry.get_sample_value("database_connections_active") == 3.0

    def test_exposition_names(self, metrics, registry):
        """Test every collector is exposed under its documented name."""
        metrics.record_http_request("GET", "/metrics", "200", 0.001)
        metrics.record_database_query("health_check", 0.001)

        output = generate_latest(registry).decode()

        for name in (
            "http_requests_total",
            "http_request_duration_seconds",
            "active_requests",
            "database_connections_active",
            "database_query_duration_seconds",
        ):
            assert f"# TYPE {name} " in output
