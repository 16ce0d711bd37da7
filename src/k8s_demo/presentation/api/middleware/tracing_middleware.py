"""
Distributed tracing middleware.
"""

from typing import Callable

from fastapi import Request, Response
from opentelemetry import trace
from opentelemetry.propagators.textmap import TextMapPropagator
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from k8s_demo.infrastructure.monitoring.logger import get_request_id


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Opens a server span per request.

    The incoming trace context (traceparent, baggage) is extracted with the
    configured propagator so the span joins the caller's trace.
    """

    def __init__(
        self, app: ASGIApp, tracer: trace.Tracer, propagator: TextMapPropagator
    ):
        super().__init__(app)
        self.tracer = tracer
        self.propagator = propagator

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        parent_context = self.propagator.extract(carrier=dict(request.headers))

        with self.tracer.start_as_current_span(
            f"{request.method} {request.url.path}",
            context=parent_context,
            kind=trace.SpanKind.SERVER,
        ) as span:
            span.set_attributes(
                {
                    "http.method": request.method,
                    "http.url": str(request.url),
                    "http.route": request.url.path,
                    "http.user_agent": request.headers.get("user-agent", ""),
                    "http.remote_addr": request.client.host if request.client else "",
                    "http.request_id": get_request_id() or "",
                }
            )

            response = await call_next(request)

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 500:
                span.set_status(trace.Status(trace.StatusCode.ERROR))

            return response
