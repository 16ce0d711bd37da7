"""
API middleware for k8s-demo.
"""

from k8s_demo.presentation.api.middleware.error_handler import (
    k8s_demo_exception_handler,
    unhandled_exception_handler,
)
from k8s_demo.presentation.api.middleware.logging_middleware import (
    LoggingMiddleware,
)
from k8s_demo.presentation.api.middleware.metrics_middleware import (
    MetricsMiddleware,
)
from k8s_demo.presentation.api.middleware.request_id_middleware import (
    RequestIDMiddleware,
)
from k8s_demo.presentation.api.middleware.tracing_middleware import (
    TracingMiddleware,
)

__all__ = [
    "k8s_demo_exception_handler",
    "unhandled_exception_handler",
    "LoggingMiddleware",
    "MetricsMiddleware",
    "RequestIDMiddleware",
    "TracingMiddleware",
]
