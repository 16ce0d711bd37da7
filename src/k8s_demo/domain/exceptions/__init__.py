"""
Domain exceptions for k8s-demo.
"""

from k8s_demo.domain.exceptions.base import ConfigError, K8sDemoException
from k8s_demo.domain.exceptions.database import (
    DataStoreConnectivityError,
    DataStoreOpenError,
    DeadlineExceededError,
    QueryError,
    StatusCheckError,
)
from k8s_demo.domain.exceptions.server import ListenError, ShutdownTimeoutError
from k8s_demo.domain.exceptions.telemetry import (
    TelemetryInitError,
    TelemetryShutdownError,
)

__all__ = [
    "K8sDemoException",
    "ConfigError",
    "DataStoreOpenError",
    "DataStoreConnectivityError",
    "StatusCheckError",
    "DeadlineExceededError",
    "QueryError",
    "TelemetryInitError",
    "TelemetryShutdownError",
    "ListenError",
    "ShutdownTimeoutError",
]
