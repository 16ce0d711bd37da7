"""
Global error handling.

Domain exceptions map to error envelopes by code; anything else becomes a
500 envelope so a failing handler never takes the process down.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from k8s_demo.domain.exceptions import K8sDemoException
from k8s_demo.infrastructure.monitoring.logger import get_logger
from k8s_demo.presentation.api.responses import respond_error

logger = get_logger(__name__)

INTERNAL_SERVER_ERROR = "StatusInternalServerError"
SERVICE_UNAVAILABLE = "StatusServiceUnavailable"


async def k8s_demo_exception_handler(
    request: Request, exc: K8sDemoException
) -> JSONResponse:
    """
    Handle domain exceptions.

    Data store problems surface as 503, everything else as 500.
    """
    status_code_map = {
        "DATA_STORE_CONNECTIVITY_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
        "DEADLINE_EXCEEDED": status.HTTP_503_SERVICE_UNAVAILABLE,
        "QUERY_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    status_code = status_code_map.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    error_code = (
        SERVICE_UNAVAILABLE
        if status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        else INTERNAL_SERVER_ERROR
    )

    logger.error(
        "Request failed",
        extra={"error": exc.message, "code": exc.code, "path": request.url.path},
    )

    return respond_error(status_code, error_code, exc.message, {"code": exc.code})


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Convert an unexpected exception into a 500 envelope."""
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path},
    )
    return respond_error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        INTERNAL_SERVER_ERROR,
        "Internal Server Error",
    )
