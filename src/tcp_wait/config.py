"""Wait configuration sourced from environment variables."""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass

logger = logging.getLogger("tcp-wait")

DEFAULT_TIMEOUT = 60.0
DEFAULT_CONNECT_TIMEOUT = 1.0
DEFAULT_RETRY_INTERVAL = 0.0


@dataclass
class WaitConfig:
    """Timing parameters for a wait run, all in seconds."""

    timeout: float = DEFAULT_TIMEOUT
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    retry_interval: float = DEFAULT_RETRY_INTERVAL

    @classmethod
    def from_env(cls) -> "WaitConfig":
        """Create a configuration instance from process environment variables."""

        def _get_float(key: str, default: float, *, allow_zero: bool = False) -> float:
            raw = os.getenv(key, "").strip()
            if not raw:
                return default
            try:
                value = float(raw)
            except ValueError:
                logger.warning("Invalid value '%s' for %s; using %s", raw, key, default)
                return default
            if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
                logger.warning("Out of range value '%s' for %s; using %s", raw, key, default)
                return default
            return value

        return cls(
            timeout=_get_float("TCP_WAIT_TIMEOUT", DEFAULT_TIMEOUT),
            connect_timeout=_get_float("TCP_WAIT_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            retry_interval=_get_float("TCP_WAIT_RETRY_INTERVAL", DEFAULT_RETRY_INTERVAL, allow_zero=True),
        )
