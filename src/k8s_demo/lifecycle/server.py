"""
Server lifecycle: construction, serving and ordered teardown.

A Server owns one data store handle, one HTTP listener and one tracing
shutdown callback. They are created together by Server.create() and torn
down together by shutdown(), always in the order listener -> data store ->
tracing.
"""

import asyncio
import logging
import socket
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import uvicorn
from prometheus_client import CollectorRegistry

from k8s_demo.config import AppConfig, WebConfig, split_host_port
from k8s_demo.domain.exceptions import (
    ConfigError,
    DataStoreConnectivityError,
    K8sDemoException,
    ListenError,
    ShutdownTimeoutError,
    StatusCheckError,
    TelemetryInitError,
)
from k8s_demo.infrastructure.monitoring import Metrics
from k8s_demo.infrastructure.observability import (
    NoopTracing,
    TracingConfig,
    TracingManager,
    init_tracing,
    start_span,
)
from k8s_demo.infrastructure.persistence import (
    Database,
    check_status,
    open_database,
)
from k8s_demo.presentation.api import create_app


class ServerState(str, Enum):
    """Lifecycle states of a Server."""

    UNINITIALIZED = "uninitialized"
    STARTING = "starting"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class ListenerConfig:
    """Address and timeouts (seconds) the HTTP listener is bound with."""

    address: str
    read_timeout: float
    write_timeout: float
    idle_timeout: float

    @classmethod
    def from_web(cls, web: WebConfig) -> "ListenerConfig":
        return cls(
            address=web.api_host,
            read_timeout=web.read_timeout,
            write_timeout=web.write_timeout,
            idle_timeout=web.idle_timeout,
        )


class Server:
    """
    HTTP server with database and tracing lifecycle.

    Usage:
        server = Server.create(config, logger)
        threading.Thread(target=server.start).start()
        ...
        server.shutdown()
    """

    def __init__(
        self,
        config: AppConfig,
        log: logging.Logger,
        registry: Optional[CollectorRegistry] = None,
        register_global: bool = True,
    ):
        """
        Initialize an unconstructed server. Use Server.create() instead.

        Args:
            config: Application config
            log: Logger for lifecycle events
            registry: Prometheus registry (default: process-wide registry)
            register_global: Install the tracer provider process-wide
        """
        self.config = config
        self.log = log
        self.registry = registry
        self.register_global = register_global

        self.state = ServerState.UNINITIALIZED

        self.tracing: Union[TracingManager, NoopTracing, None] = None
        self.metrics: Optional[Metrics] = None
        self.database: Optional[Database] = None
        self.app = None
        self.listener = ListenerConfig.from_web(config.web)
        self.uvicorn_config: Optional[uvicorn.Config] = None

        self._server: Optional[uvicorn.Server] = None
        self._socket: Optional[socket.socket] = None
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._shutdown_requested = False
        self._shutdown_done = False

    @classmethod
    def create(
        cls,
        config: AppConfig,
        log: logging.Logger,
        registry: Optional[CollectorRegistry] = None,
        register_global: bool = True,
    ) -> "Server":
        """
        Build a fully wired server.

        Raises:
            DataStoreOpenError: If the connection pool cannot be created
            DataStoreConnectivityError: If the data store never became reachable
        """
        server = cls(config, log, registry=registry, register_global=register_global)
        server.bootstrap()
        return server

    def bootstrap(self) -> None:
        """
        Run the construction steps in order.

        1. tracing (non-fatal, falls back to no-op)
        2. metrics
        3. data store pool
        4. data store status check
        5. HTTP application and listener config
        """
        self.state = ServerState.STARTING

        try:
            self._init_tracing()
            self.metrics = Metrics(self.registry)
            self.database = open_database(
                self.config.db, application_name=self.config.service_name
            )
            self._verify_database()
            self._build_listener()
        except K8sDemoException:
            self.state = ServerState.FAILED
            # Nothing owns the partially built resources yet
            if self.database is not None:
                self.database.close()
            self._shutdown_tracing(self.config.web.shutdown_timeout)
            raise

        self.log.info(
            "Server constructed",
            extra={
                "address": self.listener.address,
                "read_timeout": self.listener.read_timeout,
                "write_timeout": self.listener.write_timeout,
                "idle_timeout": self.listener.idle_timeout,
            },
        )

    def _init_tracing(self) -> None:
        tracing_config = TracingConfig(
            service_name=self.config.service_name,
            service_version=self.config.service_version,
            environment=self.config.environment,
            endpoint=self.config.jaeger_endpoint,
        )
        try:
            self.tracing = init_tracing(
                tracing_config, register_global=self.register_global
            )
        except TelemetryInitError as e:
            self.log.warning(
                "Failed to initialize tracing, continuing without it",
                extra={"error": e.message},
            )
            self.tracing = NoopTracing()

    def _verify_database(self) -> None:
        with start_span(
            self.tracing.tracer,
            "startup_check",
            {"db.system": "postgresql", "db.name": self.config.db.name},
        ):
            try:
                check_status(self.database, log=self.log)
            except StatusCheckError as e:
                raise DataStoreConnectivityError(e.message) from e

        self.log.info(
            "Database connection established", extra={"db": self.database.label}
        )

    def _build_listener(self) -> None:
        self.app = create_app(
            self.config,
            self.database,
            self.metrics,
            self.tracing.tracer,
            self.tracing.propagator,
        )
        self.uvicorn_config = uvicorn.Config(
            self.app,
            timeout_keep_alive=max(int(self.listener.idle_timeout), 1),
            timeout_graceful_shutdown=self.config.web.shutdown_timeout,
            proxy_headers=True,
            forwarded_allow_ips="*",
            log_config=None,
            access_log=False,
            lifespan="off",
        )

    def _bind(self) -> socket.socket:
        address = self.listener.address
        try:
            host, port = split_host_port(address)
        except ConfigError as e:
            raise ListenError(address, e.message) from e

        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((host, port))
            sock.listen(2048)
            sock.set_inheritable(True)
        except OSError as e:
            sock.close()
            raise ListenError(address, str(e)) from e
        return sock

    def start(self) -> None:
        """
        Bind the listener and serve until shutdown() is called.

        Blocks the calling thread.

        Raises:
            ListenError: If the address cannot be bound or serving stops
                without a shutdown request
        """
        sock = self._bind()

        with self._lock:
            if self._shutdown_requested:
                sock.close()
                self._stopped.set()
                return
            self._socket = sock
            self._server = uvicorn.Server(self.uvicorn_config)
            self.state = ServerState.SERVING

        self.log.info(
            "server starting with full observability",
            extra={
                "address": self.bound_address,
                "service": self.config.service_name,
                "version": self.config.service_version,
                "environment": self.config.environment,
            },
        )

        try:
            asyncio.run(self._server.serve(sockets=[sock]))
        except SystemExit as e:
            raise ListenError(self.listener.address, "server failed to start") from e
        finally:
            self._socket = None
            sock.close()
            self._stopped.set()

        if not self._shutdown_requested:
            self.state = ServerState.FAILED
            raise ListenError(self.listener.address, "server stopped unexpectedly")

    @property
    def bound_address(self) -> Optional[tuple]:
        """Actual (host, port) of the listening socket, once bound."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[:2]

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """
        Tear down listener, data store and tracing, in that order.

        Every step runs even if an earlier one fails.

        Args:
            timeout: Upper bound in seconds; the configured shutdown timeout
                applies when it is smaller or when no timeout is given

        Raises:
            ShutdownTimeoutError: If in-flight requests did not drain in time
        """
        with self._lock:
            if self._shutdown_done:
                self.log.info("Shutdown already performed")
                return
            self._shutdown_done = True
            self._shutdown_requested = True
            uvicorn_server = self._server

        bound = self.config.web.shutdown_timeout
        if timeout is not None:
            bound = min(timeout, bound)
        deadline = time.monotonic() + bound

        self.state = ServerState.SHUTTING_DOWN
        self.log.info("Shutting down server", extra={"timeout": bound})

        listener_error: Optional[ShutdownTimeoutError] = None
        if uvicorn_server is not None:
            uvicorn_server.config.timeout_graceful_shutdown = max(bound, 0.0)
            uvicorn_server.should_exit = True
            if not self._stopped.wait(max(deadline - time.monotonic(), 0.0)):
                uvicorn_server.force_exit = True
                listener_error = ShutdownTimeoutError(bound)
                self.log.error(
                    "Server shutdown timed out", extra={"timeout": bound}
                )

        if self.database is not None:
            try:
                self.database.close()
            except Exception as e:
                self.log.warning(
                    "Error closing database connection", extra={"error": str(e)}
                )

        self._shutdown_tracing(max(deadline - time.monotonic(), 0.0))

        self.state = ServerState.STOPPED
        self.log.info("Server stopped")

        if listener_error is not None:
            raise listener_error

    def _shutdown_tracing(self, timeout: float) -> None:
        if self.tracing is None:
            return
        try:
            self.tracing.shutdown(timeout)
        except Exception as e:
            self.log.warning("Error shutting down tracing", extra={"error": str(e)})
