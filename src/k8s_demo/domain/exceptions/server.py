"""
HTTP listener exceptions.
"""

from k8s_demo.domain.exceptions.base import K8sDemoException


class ListenError(K8sDemoException):
    """Raised when the listener cannot bind or stops serving unexpectedly."""

    def __init__(self, address: str, reason: str):
        super().__init__(f"server error on {address}: {reason}", code="LISTEN_ERROR")
        self.address = address


class ShutdownTimeoutError(K8sDemoException):
    """Raised when the listener does not drain within the shutdown timeout."""

    def __init__(self, timeout: float):
        super().__init__(
            f"could not stop server gracefully within {timeout:.1f}s",
            code="SHUTDOWN_TIMEOUT",
        )
        self.timeout = timeout
