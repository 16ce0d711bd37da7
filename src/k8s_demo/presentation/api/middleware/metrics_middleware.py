"""
Prometheus metrics middleware for FastAPI.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from k8s_demo.infrastructure.monitoring import Metrics


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect HTTP metrics.

    Records:
    - In-flight request gauge
    - Request count by method/endpoint/status code
    - Request duration by method/endpoint
    """

    def __init__(self, app: ASGIApp, metrics: Metrics):
        super().__init__(app)
        self.metrics = metrics

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request and collect metrics.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response from handler
        """
        endpoint = request.url.path
        method = request.method

        self.metrics.active_requests.inc()
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self.metrics.record_http_request(
                method, endpoint, "500", time.perf_counter() - start_time
            )
            raise
        finally:
            self.metrics.active_requests.dec()

        self.metrics.record_http_request(
            method,
            endpoint,
            str(response.status_code),
            time.perf_counter() - start_time,
        )

        return response
