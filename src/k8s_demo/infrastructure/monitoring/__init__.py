"""
Monitoring and observability infrastructure.
"""

from k8s_demo.infrastructure.monitoring.logger import (
    get_logger,
    get_request_id,
    log_request,
    set_request_id,
    setup_logging,
    trace_fields,
)
from k8s_demo.infrastructure.monitoring.metrics import Metrics

__all__ = [
    "Metrics",
    "get_logger",
    "get_request_id",
    "set_request_id",
    "setup_logging",
    "log_request",
    "trace_fields",
]
