"""
Telemetry exceptions.
"""

from k8s_demo.domain.exceptions.base import K8sDemoException


class TelemetryInitError(K8sDemoException):
    """Raised when the trace exporter or provider cannot be built."""

    def __init__(self, reason: str):
        super().__init__(
            f"failed to initialize tracing: {reason}", code="TELEMETRY_INIT_ERROR"
        )


class TelemetryShutdownError(K8sDemoException):
    """Raised when pending spans cannot be flushed in time."""

    def __init__(self, reason: str):
        super().__init__(
            f"error shutting down tracing: {reason}",
            code="TELEMETRY_SHUTDOWN_ERROR",
        )
