"""CLI entry point for tcp-wait."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Optional, Tuple

import click
from dotenv import load_dotenv

from .__about__ import __version__
from .config import WaitConfig
from .coordinator import RunOutcome, wait_for_endpoints
from .endpoint import Endpoint, InvalidEndpointError, discover_endpoints, merge_endpoints

logger = logging.getLogger("tcp-wait")


def _configure_logging(verbose: int) -> None:
    level = logging.DEBUG if verbose >= 1 else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    logger.setLevel(level)


def _load_env_file(env_file: Optional[str]) -> None:
    if env_file:
        path = Path(env_file)
        if path.exists():
            load_dotenv(path)
            return
        raise click.BadParameter(f"Environment file not found: {env_file}", param_hint="--env-file")
    default = Path.cwd() / ".env"
    if default.exists():
        load_dotenv(default)


def _require_finite(ctx: click.Context, param: click.Parameter, value: Optional[float]) -> Optional[float]:
    if value is not None and not math.isfinite(value):
        raise click.BadParameter(f"{value!r} is not a finite number of seconds", ctx=ctx, param=param)
    return value


def _parse_endpoints(ctx: click.Context, param: click.Parameter, value: Tuple[str, ...]) -> Tuple[Endpoint, ...]:
    endpoints = []
    for spec in value:
        try:
            endpoints.append(Endpoint.parse(spec))
        except InvalidEndpointError as exc:
            raise click.BadParameter(str(exc), ctx=ctx, param=param) from exc
    return tuple(endpoints)


@click.group(invoke_without_command=True)
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), callback=_require_finite, help="Time to wait for all endpoints to be up (seconds) [default: 60]")
@click.option("--connect-timeout", type=click.FloatRange(min=0, min_open=True), callback=_require_finite, help="Timeout for a single connection attempt (seconds) [default: 1]")
@click.option("--interval", type=click.FloatRange(min=0), callback=_require_finite, help="Pause between failed attempts (seconds) [default: 0]")
@click.option("--endpoint", "endpoints", multiple=True, callback=_parse_endpoints, metavar="NAME=HOST:PORT", help="Additional endpoint to wait for")
@click.option("--env-discovery/--no-env-discovery", default=True, show_default=True, help="Scan <NAME>_TCP_ADDR/<NAME>_TCP_PORT variables")
@click.option("--env-file", type=str, help="Path to a .env file loaded before discovery")
@click.option("-v", "--verbose", count=True, help="Increase logging verbosity")
@click.pass_context
def cli(
    ctx: click.Context,
    timeout: Optional[float],
    connect_timeout: Optional[float],
    interval: Optional[float],
    endpoints: Tuple[Endpoint, ...],
    env_discovery: bool,
    env_file: Optional[str],
    verbose: int,
) -> None:
    """Wait until every configured TCP endpoint accepts connections."""

    if ctx.invoked_subcommand is not None:
        return

    _configure_logging(verbose)
    _load_env_file(env_file)

    config = WaitConfig.from_env()
    if timeout is not None:
        config.timeout = timeout
    if connect_timeout is not None:
        config.connect_timeout = connect_timeout
    if interval is not None:
        config.retry_interval = interval

    discovered = discover_endpoints() if env_discovery else []
    targets = merge_endpoints(discovered, endpoints)
    logger.info("Endpoints: %s", ", ".join(f"{e.name}={e.address_and_port}" for e in targets) or "none")

    outcome = wait_for_endpoints(
        targets,
        config.timeout,
        connect_timeout=config.connect_timeout,
        retry_interval=config.retry_interval,
    )
    ctx.exit(outcome.exit_code)


@cli.command("version")
def version_cmd() -> None:
    """Print the package version."""

    click.echo(__version__)


__all__ = ["cli", "RunOutcome", "__version__"]
