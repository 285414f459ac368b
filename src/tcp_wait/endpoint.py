"""Endpoint value type and environment discovery."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

logger = logging.getLogger("tcp-wait")

ADDR_SUFFIX = "_TCP_ADDR"
PORT_SUFFIX = "_TCP_PORT"


class InvalidEndpointError(ValueError):
    """Raised when an endpoint definition cannot be used for probing."""


@dataclass(frozen=True)
class Endpoint:
    """A named TCP address that must accept connections."""

    name: str
    address: str
    port: int

    def __post_init__(self) -> None:
        if not self.name:
            raise InvalidEndpointError("Endpoint name must not be empty")
        if not self.address:
            raise InvalidEndpointError(f"Endpoint {self.name!r} has an empty address")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise InvalidEndpointError(f"Endpoint {self.name!r} port must be an integer, got {self.port!r}")
        if not 1 <= self.port <= 65535:
            raise InvalidEndpointError(f"Endpoint {self.name!r} port {self.port} is outside 1-65535")

    @property
    def address_and_port(self) -> str:
        if ":" in self.address:
            return f"[{self.address}]:{self.port}"
        return f"{self.address}:{self.port}"

    @classmethod
    def parse(cls, spec: str) -> "Endpoint":
        """Build an endpoint from ``NAME=HOST:PORT`` or ``HOST:PORT``."""

        name, sep, target = spec.partition("=")
        if not sep:
            name, target = "", spec
        host, sep, port_str = target.strip().rpartition(":")
        if not sep:
            raise InvalidEndpointError(f"Expected HOST:PORT in {spec!r}")
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        try:
            port = int(port_str)
        except ValueError as exc:
            raise InvalidEndpointError(f"Invalid port {port_str!r} in {spec!r}") from exc
        return cls(name=name.strip() or target.strip(), address=host, port=port)


def discover_endpoints(environ: Optional[Mapping[str, str]] = None) -> List[Endpoint]:
    """Collect ``<NAME>_TCP_ADDR``/``<NAME>_TCP_PORT`` pairs from the environment.

    Entries with a missing or malformed port are skipped with a warning so
    that only valid endpoints reach the coordinator.
    """

    env = os.environ if environ is None else environ
    endpoints: List[Endpoint] = []
    for key in list(env):
        if not key.endswith(ADDR_SUFFIX):
            continue
        name = key[: -len(ADDR_SUFFIX)]
        port_key = name + PORT_SUFFIX
        port_str = env.get(port_key, "")
        try:
            port = int(port_str)
        except ValueError:
            logger.warning(
                "Failed to convert '%s' to int, value: '%s' - skipping endpoint '%s'",
                port_key,
                port_str,
                name,
            )
            continue
        try:
            endpoints.append(Endpoint(name=name, address=env[key].strip(), port=port))
        except InvalidEndpointError as exc:
            logger.warning("Skipping endpoint '%s': %s", name, exc)
    return endpoints


def merge_endpoints(*groups: Iterable[Endpoint]) -> List[Endpoint]:
    """Combine endpoint lists so that every name appears once.

    A later definition of a name replaces an earlier one in place; a warning
    is logged when the two point at different addresses.
    """

    merged: Dict[str, Endpoint] = {}
    for group in groups:
        for endpoint in group:
            previous = merged.get(endpoint.name)
            if previous is not None and previous != endpoint:
                logger.warning(
                    "Endpoint '%s' defined more than once (%s, %s); using %s",
                    endpoint.name,
                    previous.address_and_port,
                    endpoint.address_and_port,
                    endpoint.address_and_port,
                )
            merged[endpoint.name] = endpoint
    return list(merged.values())
