"""
Database connection pool management.
"""

import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any, Iterator

from sqlalchemy import Connection, Engine, create_engine, event, text
from sqlalchemy.engine import URL
from sqlalchemy.exc import ArgumentError, NoSuchModuleError

from k8s_demo.config import DatabaseConfig
from k8s_demo.domain.exceptions import DataStoreOpenError

_SCHEME_DRIVERS = {
    "postgres": "postgresql+psycopg2",
    "postgresql": "postgresql+psycopg2",
}


@dataclass(frozen=True)
class PoolStats:
    """Snapshot of connection pool statistics."""

    open: int
    idle: int
    in_use: int
    max_open: int
    wait_count: int
    max_idle_closed: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def build_database_url(config: DatabaseConfig) -> URL:
    """
    Build the SQLAlchemy URL for the configured data store.

    DB_HOST may carry a port ("db:5432"); DB_TLS maps to libpq sslmode.
    """
    drivername = _SCHEME_DRIVERS.get(config.scheme.lower(), config.scheme)
    host, _, port = config.host.partition(":")
    return URL.create(
        drivername=drivername,
        username=config.user or None,
        password=config.password or None,
        host=host or None,
        port=int(port) if port.isdigit() else None,
        database=config.name or None,
        query={"sslmode": config.tls} if config.tls else {},
    )


def pool_sizing(max_idle_conns: int, max_open_conns: int) -> tuple[int, int]:
    """
    Translate idle/open connection limits into QueuePool arguments.

    Returns:
        (pool_size, max_overflow); max_overflow of -1 means unlimited
    """
    if max_open_conns <= 0:
        return max(max_idle_conns, 1), -1
    pool_size = max(min(max_idle_conns, max_open_conns), 1)
    return pool_size, max_open_conns - pool_size


class Database:
    """
    Synchronous connection pool wrapper around a SQLAlchemy engine.

    The engine's QueuePool does all checkout locking; this class only adds
    the probes used by the status check and pool statistics.
    """

    def __init__(self, engine: Engine, max_open_conns: int = 0):
        """
        Initialize database wrapper.

        Args:
            engine: SQLAlchemy engine owning the pool
            max_open_conns: Configured open connection limit (0 = unlimited)
        """
        self._engine = engine
        self._max_open_conns = max_open_conns
        self._lock = threading.Lock()
        self._wait_count = 0
        self._closed_count = 0
        self._invalidated: set[int] = set()
        self._closed = False

        event.listen(engine.pool, "invalidate", self._on_invalidate)
        event.listen(engine.pool, "soft_invalidate", self._on_invalidate)
        event.listen(engine.pool, "close", self._on_close)

    def _on_invalidate(
        self, dbapi_connection: Any, connection_record: Any, exception: Any
    ) -> None:
        with self._lock:
            self._invalidated.add(id(dbapi_connection))

    def _on_close(self, dbapi_connection: Any, connection_record: Any) -> None:
        # Only closes of healthy connections returned to a full pool count
        with self._lock:
            if id(dbapi_connection) in self._invalidated:
                self._invalidated.discard(id(dbapi_connection))
                return
            if self._closed:
                return
            self._closed_count += 1

    def _checked_out(self) -> int:
        return getattr(self._engine.pool, "checkedout", lambda: 0)()

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def label(self) -> str:
        """Database URL with the password masked."""
        return self._engine.url.render_as_string(hide_password=True)

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """
        Check a connection out of the pool.

        Checkouts that find every allowed connection in use are counted
        as waits.
        """
        if self._max_open_conns > 0 and self._checked_out() >= self._max_open_conns:
            with self._lock:
                self._wait_count += 1
        with self._engine.connect() as connection:
            yield connection

    def ping(self) -> None:
        """Run a trivial round-trip query."""
        with self.connection() as connection:
            connection.execute(text("SELECT 1"))

    def select_true(self) -> Any:
        """Run the confirmation query and return its scalar."""
        with self.connection() as connection:
            return connection.execute(text("SELECT TRUE")).scalar_one()

    def stats(self) -> PoolStats:
        """
        Return current pool statistics.

        max_idle_closed approximates connections dropped because the idle
        pool was full: it counts pool closes that are neither invalidations
        nor part of close().
        """
        pool = self._engine.pool
        idle = getattr(pool, "checkedin", lambda: 0)()
        in_use = self._checked_out()
        with self._lock:
            wait_count = self._wait_count
            closed = self._closed_count
        return PoolStats(
            open=idle + in_use,
            idle=idle,
            in_use=in_use,
            max_open=self._max_open_conns,
            wait_count=wait_count,
            max_idle_closed=closed,
        )

    def close(self) -> None:
        """Close every pooled connection."""
        if self._closed:
            return
        self._closed = True
        self._engine.dispose()

    @property
    def is_closed(self) -> bool:
        return self._closed


def open_database(config: DatabaseConfig, application_name: str = "k8s-demo") -> Database:
    """
    Create the connection pool. No connection is made yet.

    Args:
        config: Data store configuration
        application_name: Reported to PostgreSQL in pg_stat_activity

    Returns:
        Database wrapper

    Raises:
        DataStoreOpenError: If the URL or driver is invalid
    """
    pool_size, max_overflow = pool_sizing(config.max_idle_conns, config.max_open_conns)
    try:
        engine = create_engine(
            build_database_url(config),
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            connect_args={
                "application_name": application_name,
                "connect_timeout": 5,
            },
        )
    except (ArgumentError, NoSuchModuleError, ImportError, ValueError) as e:
        raise DataStoreOpenError(str(e)) from e

    return Database(engine, max_open_conns=config.max_open_conns)
