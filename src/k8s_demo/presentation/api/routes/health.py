"""
Health check API route.

Probes the data store with the status checker and reports pool statistics.
"""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response, status
from opentelemetry import trace

from k8s_demo.domain.exceptions import StatusCheckError
from k8s_demo.infrastructure.monitoring import get_logger
from k8s_demo.infrastructure.observability import start_span
from k8s_demo.infrastructure.persistence import check_status
from k8s_demo.presentation.api.middleware.error_handler import (
    INTERNAL_SERVER_ERROR,
)
from k8s_demo.presentation.api.responses import respond_error, respond_success

router = APIRouter(tags=["health"])

logger = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", status_code=status.HTTP_200_OK)
def health_check(request: Request) -> Response:
    """
    Health check endpoint.

    Runs the data store status check (blocking, so this handler is sync and
    executes on the worker threadpool).

    Returns:
        200 success envelope with pool statistics, or 500 error envelope
        when the data store is unreachable
    """
    state = request.app.state
    config = state.config
    tracer = state.tracer

    request_start = time.perf_counter()
    with start_span(
        tracer,
        "health_check",
        {
            "service.name": config.service_name,
            "service.version": config.service_version,
            "operation.type": "health_check",
            "http.method": request.method,
            "http.path": request.url.path,
            "http.remote_addr": request.client.host if request.client else "",
        },
    ) as span:
        logger.info("Health check requested")

        start_time = time.perf_counter()
        with start_span(
            tracer,
            "health_check_database",
            {"db.operation": "ping", "db.purpose": "health_check"},
        ) as db_span:
            try:
                check_status(state.database, log=logger)
            except StatusCheckError as e:
                duration = time.perf_counter() - start_time
                state.metrics.record_database_query("health_check", duration)

                db_span.record_exception(e)
                db_span.set_status(trace.Status(trace.StatusCode.ERROR, e.message))
                db_span.set_attribute("db.healthy", False)
                span.set_attributes(
                    {"health.status": "unhealthy", "health_check.passed": False}
                )

                logger.error(
                    "Database health check failed",
                    extra={
                        "error": e.message,
                        "duration_ms": round(duration * 1000, 2),
                    },
                )

                return respond_error(
                    status.HTTP_500_INTERNAL_SERVER_ERROR,
                    INTERNAL_SERVER_ERROR,
                    "Database connectivity issue",
                    {
                        "component": "database",
                        "timestamp": _utc_now(),
                        "duration_ms": round(duration * 1000, 2),
                    },
                )

            duration = time.perf_counter() - start_time
            db_span.set_attributes(
                {"db.healthy": True, "db.duration_seconds": duration}
            )

        state.metrics.record_database_query("health_check", duration)

        stats = state.database.stats()
        state.metrics.database_connections_active.set(stats.open)

        span.set_attributes(
            {
                "health.status": "healthy",
                "health_check.passed": True,
                "db.connections.open": stats.open,
                "db.connections.idle": stats.idle,
                "db.connections.in_use": stats.in_use,
            }
        )

        logger.info(
            "Health check completed successfully",
            extra={"duration_ms": round(duration * 1000, 2)},
        )

        response = respond_success(
            status.HTTP_200_OK,
            "Service healthy",
            {
                "uptime_check": "passed",
                "status": "healthy",
                "service": config.service_name,
                "version": config.service_version,
                "timestamp": _utc_now(),
                "checks": {
                    "database": {
                        "status": "connected",
                        "duration_ms": round(duration * 1000, 2),
                        "connections": stats.to_dict(),
                    }
                },
            },
        )

        span.set_attributes(
            {
                "health_check.total_duration_seconds": time.perf_counter()
                - request_start,
                "health_check.db_duration_seconds": duration,
            }
        )
        return response
