"""Shared cancellation signal and the one-shot deadline timer that sets it."""

from __future__ import annotations

import logging
import math
import threading
from typing import Optional

logger = logging.getLogger("tcp-wait")


class CancellationSignal:
    """Write-once broadcast flag observed by every prober."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()

    def set(self) -> bool:
        """Move the signal to SET. Only the first call returns ``True``."""

        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)


class DeadlineTimer:
    """Fire a :class:`CancellationSignal` once after a delay unless disarmed.

    ``disarm`` and the fire callback share one lock, so exactly one of them
    wins and the answer returned by ``disarm`` tells the caller whether the
    deadline passed.
    """

    def __init__(self, signal: CancellationSignal) -> None:
        self._signal = signal
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._fired = False
        self._disarmed = False

    @property
    def signal(self) -> CancellationSignal:
        return self._signal

    @property
    def fired(self) -> bool:
        with self._lock:
            return self._fired

    def arm(self, duration: float) -> None:
        if not math.isfinite(duration) or duration < 0:
            raise ValueError(f"Deadline duration must be a finite, non-negative number, got {duration!r}")
        with self._lock:
            if self._timer is not None:
                raise RuntimeError("Deadline timer is already armed")
            self._timer = threading.Timer(duration, self._fire)
            self._timer.name = "tcp-wait-deadline"
            self._timer.daemon = True
            self._timer.start()
        logger.debug("Deadline armed", extra={"duration": duration})

    def disarm(self) -> bool:
        """Cancel a pending fire; ``False`` means the deadline already fired."""

        with self._lock:
            if self._fired:
                return False
            self._disarmed = True
            if self._timer is not None:
                self._timer.cancel()
            return True

    def _fire(self) -> None:
        with self._lock:
            if self._disarmed or self._fired:
                return
            self._fired = True
        if self._signal.set():
            logger.debug("Deadline elapsed; cancellation signalled")
