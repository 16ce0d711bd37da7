"""
Persistence infrastructure: connection pool and status check.
"""

from k8s_demo.infrastructure.persistence.database import (
    Database,
    PoolStats,
    build_database_url,
    open_database,
    pool_sizing,
)
from k8s_demo.infrastructure.persistence.status_check import (
    DEFAULT_TIMEOUT,
    backoff_delay,
    check_status,
)

__all__ = [
    "Database",
    "PoolStats",
    "build_database_url",
    "open_database",
    "pool_sizing",
    "DEFAULT_TIMEOUT",
    "backoff_delay",
    "check_status",
]
