"""Per-endpoint TCP connect retry loop."""

from __future__ import annotations

import logging
import socket
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_when_event_set,
    wait_fixed,
)

from .deadline import CancellationSignal
from .endpoint import Endpoint
from .status import ProbeStatusBoard

logger = logging.getLogger("tcp-wait")

DEFAULT_CONNECT_TIMEOUT = 1.0

Connector = Callable[..., Any]


class ProbeResult(Enum):
    UP = "up"
    TIMED_OUT = "timed_out"


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


def _describe(exc: Optional[BaseException]) -> Optional[str]:
    if exc is None:
        return None
    return f"{type(exc).__name__}: {exc}"


def probe_endpoint(
    endpoint: Endpoint,
    signal: CancellationSignal,
    *,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    retry_interval: float = 0.0,
    connect: Connector = socket.create_connection,
    status: Optional[ProbeStatusBoard] = None,
) -> ProbeResult:
    """Connect to ``endpoint`` until it accepts or ``signal`` is set.

    The signal is only consulted after a failed attempt, so at least one
    attempt is always made and a successful attempt is reported as ``UP``
    even when the deadline elapsed while it was in flight. Each attempt is
    recorded on ``status`` when one is given.
    """

    target: Tuple[str, int] = (endpoint.address, endpoint.port)

    def _after_failure(retry_state: RetryCallState) -> None:
        error = _describe(retry_state.outcome.exception()) if retry_state.outcome else None
        if status is not None:
            status.record_failure(
                endpoint, attempts=retry_state.attempt_number, error=error, at_utc=_utc_now()
            )
        logger.debug(
            "Endpoint %s (%s) not reachable yet: %s",
            endpoint.name,
            endpoint.address_and_port,
            error,
            extra={"endpoint": endpoint.name, "attempt": retry_state.attempt_number},
        )

    retrying = Retrying(
        retry=retry_if_exception_type(OSError),
        stop=stop_when_event_set(signal),
        wait=wait_fixed(max(0.0, retry_interval)),
        after=_after_failure,
    )
    attempts = 0
    try:
        for attempt in retrying:
            attempts = attempt.retry_state.attempt_number
            with attempt:
                conn = connect(target, timeout=connect_timeout)
                conn.close()
    except RetryError as exc:
        last_error = _describe(exc.last_attempt.exception())
        logger.warning(
            "Endpoint %s (%s) timed out. Last error: %s",
            endpoint.name,
            endpoint.address_and_port,
            last_error,
        )
        return ProbeResult.TIMED_OUT

    if status is not None:
        status.record_up(endpoint, attempts=attempts, at_utc=_utc_now())
    logger.info("Endpoint %s (%s) is up", endpoint.name, endpoint.address_and_port)
    return ProbeResult.UP
