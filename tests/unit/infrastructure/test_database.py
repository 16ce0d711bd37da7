"""
Unit tests for the database connection pool wrapper.

Uses an in-memory SQLite engine so no PostgreSQL server is needed.

Usage:
    pytest tests/unit/infrastructure/test_database.py
"""

from dataclasses import replace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import QueuePool

from k8s_demo.domain.exceptions import DataStoreOpenError
from k8s_demo.infrastructure.persistence import (
    Database,
    build_database_url,
    check_status,
    open_database,
    pool_sizing,
)


def _sqlite_engine(pool_size: int = 2, max_overflow: int = 2):
    return create_engine(
        "sqlite://",
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        connect_args={"check_same_thread": False},
    )


class TestDatabase:
    """Unit tests for Database."""

    def test_ping_and_select_true(self):
        database = Database(_sqlite_engine(), max_open_conns=4)

        database.ping()

        assert database.select_true() in (True, 1)
        database.close()

    def test_status_check_passes(self):
        """Test a reachable data store passes the status check."""
        database = Database(_sqlite_engine(), max_open_conns=4)

        check_status(database)

        database.close()

    def test_stats(self):
        database = Database(_sqlite_engine(), max_open_conns=4)
        database.ping()

        with database.connection():
            stats = database.stats()

        assert stats.open == 1
        assert stats.in_use == 1
        assert stats.idle == 0
        assert stats.max_open == 4
        assert stats.wait_count == 0
        assert set(stats.to_dict()) == {
            "open",
            "idle",
            "in_use",
            "max_open",
            "wait_count",
            "max_idle_closed",
        }
        database.close()

    def test_idle_after_release(self):
        database = Database(_sqlite_engine(), max_open_conns=4)

        database.ping()
        stats = database.stats()

        assert stats.idle == 1
        assert stats.in_use == 0
        database.close()

    def test_wait_count(self):
        """Test a checkout at the open limit is counted as a wait."""
        engine = _sqlite_engine(pool_size=1, max_overflow=1)
        database = Database(engine, max_open_conns=1)

        with database.connection():
            with database.connection():
                pass

        assert database.stats().wait_count == 1
        database.close()

    def test_overflow_release_counts_as_idle_close(self):
        """Test a connection returned to a full idle pool is counted."""
        engine = _sqlite_engine(pool_size=1, max_overflow=1)
        database = Database(engine, max_open_conns=2)

        with database.connection():
            with database.connection():
                pass

        assert database.stats().max_idle_closed == 1
        database.close()
        assert database.stats().max_idle_closed == 1

    def test_invalidated_connections_are_not_counted(self):
        database = Database(_sqlite_engine(), max_open_conns=4)

        with database.connection() as connection:
            connection.invalidate()

        assert database.stats().max_idle_closed == 0
        database.close()

    def test_close_is_idempotent(self):
        database = Database(_sqlite_engine())

        database.close()
        database.close()

        assert database.is_closed

    def test_label_renders_url(self):
        engine = create_engine("sqlite://")
        database = Database(engine)

        assert database.label == "sqlite://"


class TestPoolSizing:
    """Unit tests for pool_sizing."""

    def test_defaults(self):
        assert pool_sizing(5, 20) == (5, 15)

    def test_idle_above_open_is_capped(self):
        assert pool_sizing(30, 20) == (20, 0)

    def test_unlimited_open(self):
        assert pool_sizing(5, 0) == (5, -1)

    def test_zero_idle(self):
        assert pool_sizing(0, 10) == (1, 9)


class TestBuildDatabaseUrl:
    """Unit tests for build_database_url."""

    def test_postgres_url(self, app_config):
        url = build_database_url(app_config.db)

        assert url.drivername == "postgresql+psycopg2"
        assert url.username == "postgres"
        assert url.password == "password"
        assert url.host == "localhost"
        assert url.port is None
        assert url.database == "k8s-demo"
        assert url.query["sslmode"] == "disable"

    def test_host_with_port(self, app_config):
        db = replace(app_config.db, host="db.internal:5433", tls="require")

        url = build_database_url(db)

        assert url.host == "db.internal"
        assert url.port == 5433
        assert url.query["sslmode"] == "require"


class TestOpenDatabase:
    """Unit tests for open_database."""

    def test_pool_is_sized_from_config(self, app_config):
        """Test no connection is made and the pool follows the limits."""
        database = open_database(app_config.db)

        assert database.engine.pool.size() == 5
        assert database.stats().max_open == 20
        assert "***" in database.label
        database.close()

    def test_unknown_scheme(self, app_config):
        db = replace(app_config.db, scheme="nosuchdb")

        with pytest.raises(DataStoreOpenError) as exc_info:
            open_database(db)

        assert exc_info.value.code == "DATA_STORE_OPEN_ERROR"
