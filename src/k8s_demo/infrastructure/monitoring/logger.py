"""
Structured JSON logging configuration.

Log records carry the service identity, the current request ID and, when an
OpenTelemetry span is active, its trace and span IDs.
"""

import json
import logging
import os
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional
from uuid import uuid4

from opentelemetry import trace

# Context variable for request ID tracking
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes every LogRecord has; anything else came in through `extra=`
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}


def trace_fields() -> dict[str, str]:
    """
    Return trace correlation fields for the active span.

    Returns:
        Dict with trace_id and span_id, empty when no valid span is active
    """
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {}
    return {
        "trace_id": trace.format_trace_id(span_context.trace_id),
        "span_id": trace.format_span_id(span_context.span_id),
    }


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in JSON format with consistent schema.
    """

    def __init__(
        self,
        service: Optional[str] = None,
        version: Optional[str] = None,
        datefmt: Optional[str] = None,
    ):
        super().__init__(datefmt=datefmt)
        self.initial_fields: dict[str, Any] = {"pid": os.getpid()}
        if service:
            self.initial_fields["service"] = service
        if version:
            self.initial_fields["version"] = version

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON string
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self.initial_fields,
        }

        request_id = request_id_ctx.get()
        if request_id:
            log_data["request_id"] = request_id

        log_data.update(trace_fields())

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(_extra_fields(record))

        log_data["caller"] = f"{record.pathname}:{record.lineno}"
        log_data["function"] = record.funcName

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that appends extra and trace fields."""

    def __init__(self):
        super().__init__(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {**trace_fields(), **_extra_fields(record)}
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def setup_logging(
    level: str = "INFO",
    json_logs: bool = True,
    service: Optional[str] = None,
    version: Optional[str] = None,
) -> None:
    """
    Configure application logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Use JSON format (True) or plain text (False)
        service: Service name added to every JSON record
        version: Service version added to every JSON record
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_logs:
        formatter: logging.Formatter = JSONFormatter(
            service=service,
            version=version,
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
    else:
        formatter = TextFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Silence noisy loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    if not json_logs:
        logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger with given name.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set request ID for current context.

    Args:
        request_id: Request ID (generates UUID if None)

    Returns:
        Request ID that was set
    """
    if request_id is None:
        request_id = str(uuid4())
    request_id_ctx.set(request_id)
    return request_id


def get_request_id() -> Optional[str]:
    """
    Get request ID from current context.

    Returns:
        Request ID or None
    """
    return request_id_ctx.get()


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    remote_addr: str,
    status_code: int,
    start_time: float,
) -> None:
    """
    Log one processed HTTP request.

    Args:
        logger: Logger instance
        method: HTTP method
        path: Request path
        remote_addr: Client address
        status_code: Response status code
        start_time: Start timestamp from time.perf_counter()
    """
    duration_ms = (time.perf_counter() - start_time) * 1000
    logger.info(
        "HTTP request processed",
        extra={
            "method": method,
            "path": path,
            "duration_ms": round(duration_ms, 2),
            "remote_addr": remote_addr,
            "status_code": status_code,
        },
    )
