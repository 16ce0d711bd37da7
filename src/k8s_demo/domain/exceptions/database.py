"""
Data store exceptions.
"""

from k8s_demo.domain.exceptions.base import K8sDemoException


class DataStoreOpenError(K8sDemoException):
    """Raised when the connection pool cannot be created."""

    def __init__(self, reason: str):
        super().__init__(
            f"failed to open database: {reason}", code="DATA_STORE_OPEN_ERROR"
        )


class DataStoreConnectivityError(K8sDemoException):
    """Raised when the startup connectivity check does not pass."""

    def __init__(self, reason: str):
        super().__init__(
            f"database status check failed: {reason}",
            code="DATA_STORE_CONNECTIVITY_ERROR",
        )


class StatusCheckError(K8sDemoException):
    """Base class for status check failures."""


class DeadlineExceededError(StatusCheckError):
    """Raised when the status check deadline elapses before success."""

    def __init__(self, attempts: int):
        super().__init__(
            f"deadline exceeded after {attempts} attempt(s)",
            code="DEADLINE_EXCEEDED",
        )
        self.attempts = attempts


class QueryError(StatusCheckError):
    """Raised when the confirmation query fails or returns an unexpected value."""

    def __init__(self, reason: str):
        super().__init__(f"confirmation query failed: {reason}", code="QUERY_ERROR")
