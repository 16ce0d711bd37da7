"""
FastAPI application factory.
"""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.propagators.textmap import TextMapPropagator

from k8s_demo.config import AppConfig
from k8s_demo.domain.exceptions import K8sDemoException
from k8s_demo.infrastructure.monitoring import Metrics, get_logger
from k8s_demo.infrastructure.persistence import Database
from k8s_demo.presentation.api.middleware import (
    LoggingMiddleware,
    MetricsMiddleware,
    RequestIDMiddleware,
    TracingMiddleware,
    k8s_demo_exception_handler,
    unhandled_exception_handler,
)
from k8s_demo.presentation.api.routes import health, metrics as metrics_routes

logger = get_logger(__name__)


def create_app(
    config: AppConfig,
    database: Database,
    metrics: Metrics,
    tracer: trace.Tracer,
    propagator: TextMapPropagator,
) -> FastAPI:
    """
    Application factory - creates and configures the FastAPI app.

    Collaborators are passed in rather than looked up, so tests can hand in
    fakes, a private metrics registry and an in-memory tracer.

    Args:
        config: Application config
        database: Data store handle probed by /health
        metrics: Metrics bound to the registry served on /metrics
        tracer: Tracer for request and health check spans
        propagator: Propagator for incoming trace context

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="k8s-demo",
        version=config.service_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.config = config
    app.state.database = database
    app.state.metrics = metrics
    app.state.tracer = tracer

    # Middleware chain: the last one added runs first.
    # Request ID (outermost) -> access log -> metrics -> tracing -> handler
    app.add_middleware(TracingMiddleware, tracer=tracer, propagator=propagator)
    app.add_middleware(MetricsMiddleware, metrics=metrics)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Exception handlers
    app.add_exception_handler(K8sDemoException, k8s_demo_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Register routes
    app.include_router(health.router)
    app.include_router(metrics_routes.router)

    logger.debug("Application routes registered")

    return app
