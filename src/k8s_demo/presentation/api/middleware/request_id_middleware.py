"""
Request ID middleware for request tracking.

Incoming X-Request-ID values are kept when they are short printable ASCII.
Otherwise an ID of the form "<hostname>/<random>-<sequence>" is generated,
unique per process and sortable within it.
"""

import itertools
import re
import secrets
import socket
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from k8s_demo.infrastructure.monitoring.logger import set_request_id

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

_VALID_REQUEST_ID = re.compile(r"[\x21-\x7e]+")
_prefix = f"{socket.gethostname() or 'localhost'}/{secrets.token_hex(5)}"
_sequence = itertools.count(1)


def generate_request_id() -> str:
    """Return the next process-unique request ID."""
    return f"{_prefix}-{next(_sequence):06d}"


def is_valid_request_id(value: str) -> bool:
    """Check that a caller-supplied ID is safe to echo and log."""
    return (
        0 < len(value) <= MAX_REQUEST_ID_LENGTH
        and _VALID_REQUEST_ID.fullmatch(value) is not None
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to assign and propagate request IDs.

    The ID is stored in the logging context, on request.state and in the
    X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """
        Process request with ID tracking.

        Args:
            request: FastAPI request
            call_next: Next middleware/handler

        Returns:
            Response with X-Request-ID header
        """
        incoming = request.headers.get(REQUEST_ID_HEADER, "")
        if is_valid_request_id(incoming):
            request_id = incoming
        else:
            request_id = generate_request_id()

        set_request_id(request_id)
        request.state.request_id = request_id

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id

        return response
