"""
Prometheus metrics collection.
"""

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram


class Metrics:
    """
    Application metrics bound to one registry.

    Passing a fresh CollectorRegistry gives an isolated set of collectors
    (tests); the default registry is the process-wide one scraped by /metrics.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else REGISTRY

        # ============================================================
        # HTTP Metrics
        # ============================================================

        self.http_requests_total = Counter(
            "http_requests_total",
            "Total number of HTTP requests",
            ["method", "endpoint", "status_code"],
            registry=self.registry,
        )

        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "Duration of HTTP requests in seconds",
            ["method", "endpoint"],
            registry=self.registry,
        )

        self.active_requests = Gauge(
            "active_requests",
            "Number of requests currently being processed",
            registry=self.registry,
        )

        # ============================================================
        # Database Metrics
        # ============================================================

        self.database_connections_active = Gauge(
            "database_connections_active",
            "Number of active database connections",
            registry=self.registry,
        )

        self.database_query_duration_seconds = Histogram(
            "database_query_duration_seconds",
            "Duration of database queries in seconds",
            ["query_type"],
            registry=self.registry,
        )

    def record_http_request(
        self, method: str, endpoint: str, status_code: str, duration: float
    ) -> None:
        """Record count and duration (seconds) for one HTTP request."""
        self.http_requests_total.labels(
            method=method, endpoint=endpoint, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(
            method=method, endpoint=endpoint
        ).observe(duration)

    def record_database_query(self, query_type: str, duration: float) -> None:
        """Record duration (seconds) for one database query."""
        self.database_query_duration_seconds.labels(query_type=query_type).observe(
            duration
        )
