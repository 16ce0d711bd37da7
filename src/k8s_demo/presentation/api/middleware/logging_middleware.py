"""
Access logging middleware.
"""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from k8s_demo.infrastructure.monitoring.logger import get_logger, log_request

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per processed request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        remote_addr = request.client.host if request.client else ""

        try:
            response = await call_next(request)
        except Exception:
            log_request(
                logger, request.method, request.url.path, remote_addr, 500, start_time
            )
            raise

        log_request(
            logger,
            request.method,
            request.url.path,
            remote_addr,
            response.status_code,
            start_time,
        )
        return response
