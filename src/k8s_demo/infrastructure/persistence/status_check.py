"""
Database status check with linear backoff.

The check blocks the calling thread: it sleeps between attempts with
time.sleep, so call it from a worker thread, never from the event loop.
"""

import logging
import time
from typing import Any, Callable, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from k8s_demo.domain.exceptions import DeadlineExceededError, QueryError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
BACKOFF_STEP = 0.2

_PROBE_ERRORS = (SQLAlchemyError, OSError)


class Pingable(Protocol):
    """What the status check needs from a data store."""

    def ping(self) -> None: ...

    def select_true(self) -> Any: ...


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return attempt * BACKOFF_STEP


def check_status(
    database: Pingable,
    deadline: Optional[float] = None,
    log: Optional[logging.Logger] = None,
    sleep: Optional[Callable[[float], None]] = None,
    clock: Optional[Callable[[], float]] = None,
) -> None:
    """
    Verify the data store is reachable, retrying until the deadline.

    Pings until one succeeds, sleeping attempt x 200ms after each failure,
    then runs SELECT TRUE as confirmation.

    Args:
        database: Data store to probe
        deadline: Absolute time.monotonic() deadline (default: now + 10s)
        log: Logger for failed attempts
        sleep: Sleep function (default: time.sleep)
        clock: Monotonic clock (default: time.monotonic)

    Raises:
        DeadlineExceededError: If the deadline elapses before a ping succeeds
        QueryError: If the confirmation query fails or is not true
    """
    sleep = sleep or time.sleep
    clock = clock or time.monotonic
    log = log or logger

    if deadline is None:
        deadline = clock() + DEFAULT_TIMEOUT

    attempt = 1
    while True:
        try:
            database.ping()
            break
        except _PROBE_ERRORS as e:
            log.info("db ping error", extra={"error": str(e), "attempt": attempt})

        remaining = deadline - clock()
        sleep(min(backoff_delay(attempt), max(remaining, 0.0)))

        if clock() >= deadline:
            raise DeadlineExceededError(attempt)
        attempt += 1

    if clock() >= deadline:
        raise DeadlineExceededError(attempt)

    try:
        value = database.select_true()
    except _PROBE_ERRORS as e:
        raise QueryError(str(e)) from e

    if value is not True and value != 1:
        raise QueryError(f"unexpected result {value!r}")
