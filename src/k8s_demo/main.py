"""
k8s-demo entry point.

Builds the server, serves it on a background thread and waits on the main
thread for either a fatal serving error or SIGINT/SIGTERM.
"""

import logging
import queue
import signal
import sys
import threading

from k8s_demo.config import ENV_DEVELOPMENT, AppConfig, get_config
from k8s_demo.domain.exceptions import (
    K8sDemoException,
    ListenError,
    ShutdownTimeoutError,
)
from k8s_demo.infrastructure.monitoring import get_logger, setup_logging
from k8s_demo.lifecycle import Server

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def run(config: AppConfig, log: logging.Logger) -> int:
    """
    Run the server until a signal or a fatal error.

    Must be called from the main thread (signal handlers).

    Returns:
        Process exit code
    """
    try:
        server = Server.create(config, log)
    except K8sDemoException as e:
        log.error("startup error", extra={"error": e.message, "code": e.code})
        return 1

    # SimpleQueue.put is reentrant, so the signal handler can use it
    events: queue.SimpleQueue = queue.SimpleQueue()

    def serve() -> None:
        try:
            server.start()
        except K8sDemoException as e:
            events.put(("server_error", e))
        except Exception as e:
            events.put(("server_error", ListenError(config.web.api_host, str(e))))

    def on_signal(signum, frame) -> None:
        events.put(("signal", signum))

    previous = {sig: signal.signal(sig, on_signal) for sig in SHUTDOWN_SIGNALS}
    try:
        thread = threading.Thread(target=serve, name="HTTPServer", daemon=True)
        thread.start()

        kind, payload = events.get()
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if kind == "server_error":
        log.error("server error", extra={"error": payload.message})
        try:
            server.shutdown()
        except ShutdownTimeoutError as e:
            log.error("could not stop server gracefully", extra={"error": e.message})
        return 1

    log.info("shutdown started", extra={"signal": signal.Signals(payload).name})
    try:
        server.shutdown()
    except ShutdownTimeoutError as e:
        log.error("could not stop server gracefully", extra={"error": e.message})
        return 1

    log.info("shutdown complete")
    return 0


def main() -> None:
    """
    Main entry point for k8s-demo.

    Loads configuration, configures logging and runs the server.
    """
    config = get_config()

    setup_logging(
        level=config.log_level,
        json_logs=config.environment != ENV_DEVELOPMENT,
        service=config.service_name,
        version=config.service_version,
    )
    log = get_logger("k8s_demo")

    log.info(
        "Starting k8s-demo platform...",
        extra={"environment": config.environment, "version": config.service_version},
    )

    sys.exit(run(config, log))


if __name__ == "__main__":
    main()
