"""Per-run record of what each prober observed."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from .endpoint import Endpoint

logger = logging.getLogger("tcp-wait")


@dataclass(frozen=True)
class ProbeStatus:
    up: bool = False
    attempts: int = 0
    last_error: Optional[str] = None
    last_attempt_utc: Optional[str] = None
    up_since_utc: Optional[str] = None


class ProbeStatusBoard:
    """Thread-safe probe state for the endpoints of a single coordinator run.

    Entries are keyed by the full :class:`Endpoint`, so two endpoints that
    share a name but point at different addresses are tracked separately.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[Endpoint, ProbeStatus] = {}

    def record_failure(self, endpoint: Endpoint, *, attempts: int, error: Optional[str], at_utc: str) -> None:
        with self._lock:
            self._entries[endpoint] = ProbeStatus(
                up=False, attempts=attempts, last_error=error, last_attempt_utc=at_utc
            )

    def record_up(self, endpoint: Endpoint, *, attempts: int, at_utc: str) -> None:
        with self._lock:
            previous = self._entries.get(endpoint, ProbeStatus())
            self._entries[endpoint] = replace(
                previous, up=True, attempts=attempts, last_attempt_utc=at_utc, up_since_utc=at_utc
            )

    def get(self, endpoint: Endpoint) -> ProbeStatus:
        with self._lock:
            return self._entries.get(endpoint, ProbeStatus())

    def snapshot(self) -> Dict[Endpoint, ProbeStatus]:
        with self._lock:
            return dict(self._entries)

    def summary_lines(self, endpoints: List[Endpoint]) -> List[str]:
        """Render one line per endpoint, in the order given."""

        entries = self.snapshot()
        lines = []
        for endpoint in endpoints:
            status = entries.get(endpoint, ProbeStatus())
            line = (
                f"{endpoint.name} ({endpoint.address_and_port}): "
                f"{'up' if status.up else 'down'} after {status.attempts} attempt(s)"
            )
            if not status.up and status.last_error:
                line += f", last error: {status.last_error}"
            lines.append(line)
        return lines

    def log_summary(self, endpoints: List[Endpoint]) -> None:
        for line in self.summary_lines(endpoints):
            logger.debug("Probe summary: %s", line)
