"""Fan out one prober per endpoint and resolve the aggregate outcome."""

from __future__ import annotations

import logging
import math
import threading
from enum import Enum, auto
from typing import Callable, List, Optional, Sequence

from .deadline import CancellationSignal, DeadlineTimer
from .endpoint import Endpoint
from .prober import DEFAULT_CONNECT_TIMEOUT, ProbeResult, probe_endpoint
from .status import ProbeStatusBoard

logger = logging.getLogger("tcp-wait")

ProbeFunc = Callable[..., ProbeResult]


class CoordinatorState(Enum):
    COLLECTING = auto()
    RUNNING = auto()
    JOINING = auto()
    RESOLVING = auto()
    DONE_SUCCESS = auto()
    DONE_TIMEOUT = auto()


class RunOutcome(Enum):
    """Aggregate result of a wait run."""

    ALL_UP = 0
    TIMED_OUT = 1

    @property
    def exit_code(self) -> int:
        return self.value


class Coordinator:
    """Wait for every endpoint to accept a TCP connection within ``timeout``.

    The outcome is decided solely by :meth:`DeadlineTimer.disarm` after all
    probers have been joined. If the deadline fires after the last prober
    succeeded but before the disarm, the run resolves to ``TIMED_OUT``;
    that window is accepted.
    """

    def __init__(
        self,
        endpoints: Sequence[Endpoint],
        timeout: float,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        retry_interval: float = 0.0,
        probe: ProbeFunc = probe_endpoint,
    ) -> None:
        if not math.isfinite(timeout) or timeout <= 0:
            raise ValueError(f"timeout must be a finite, positive number of seconds, got {timeout!r}")
        if not math.isfinite(connect_timeout) or connect_timeout <= 0:
            raise ValueError(f"connect_timeout must be a finite, positive number of seconds, got {connect_timeout!r}")
        if not math.isfinite(retry_interval) or retry_interval < 0:
            raise ValueError(f"retry_interval must be a finite, non-negative number of seconds, got {retry_interval!r}")
        self._endpoints = list(endpoints)
        self._timeout = timeout
        self._connect_timeout = connect_timeout
        self._retry_interval = retry_interval
        self._probe = probe
        self._signal = CancellationSignal()
        self._timer = DeadlineTimer(self._signal)
        self._status = ProbeStatusBoard()
        self._state = CoordinatorState.COLLECTING
        self._started = False
        self._crashed = False
        self._lock = threading.Lock()

    @property
    def state(self) -> CoordinatorState:
        return self._state

    @property
    def signal(self) -> CancellationSignal:
        return self._signal

    @property
    def status(self) -> ProbeStatusBoard:
        return self._status

    def _transition(self, state: CoordinatorState) -> None:
        logger.debug("Coordinator %s -> %s", self._state.name, state.name)
        self._state = state

    def _run_probe(self, endpoint: Endpoint) -> None:
        try:
            self._probe(
                endpoint,
                self._signal,
                connect_timeout=self._connect_timeout,
                retry_interval=self._retry_interval,
                status=self._status,
            )
        except Exception:
            logger.exception("Prober for endpoint %s crashed", endpoint.name)
            with self._lock:
                self._crashed = True

    def run(self) -> RunOutcome:
        with self._lock:
            if self._started:
                raise RuntimeError("Coordinator.run() may only be called once")
            self._started = True

        threads: List[threading.Thread] = []
        for index, endpoint in enumerate(self._endpoints):
            thread = threading.Thread(
                target=self._run_probe,
                args=(endpoint,),
                name=f"tcp-wait-probe-{index}-{endpoint.name}",
                daemon=True,
            )
            thread.start()
            threads.append(thread)
        self._timer.arm(self._timeout)
        self._transition(CoordinatorState.RUNNING)

        self._transition(CoordinatorState.JOINING)
        for thread in threads:
            thread.join()

        self._transition(CoordinatorState.RESOLVING)
        if self._timer.disarm() and not self._crashed:
            self._transition(CoordinatorState.DONE_SUCCESS)
            outcome = RunOutcome.ALL_UP
        else:
            self._transition(CoordinatorState.DONE_TIMEOUT)
            outcome = RunOutcome.TIMED_OUT
        self._status.log_summary(self._endpoints)
        return outcome


def wait_for_endpoints(
    endpoints: Sequence[Endpoint],
    timeout: float,
    *,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    retry_interval: float = 0.0,
    probe: Optional[ProbeFunc] = None,
) -> RunOutcome:
    """Run a :class:`Coordinator` and log the aggregate outcome."""

    coordinator = Coordinator(
        endpoints,
        timeout,
        connect_timeout=connect_timeout,
        retry_interval=retry_interval,
        probe=probe or probe_endpoint,
    )
    outcome = coordinator.run()
    if outcome is RunOutcome.ALL_UP:
        logger.info("All endpoints are up!")
    else:
        logger.error("One or more endpoints timed out after %g second(s)", timeout)
    return outcome
