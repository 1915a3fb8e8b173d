"""portalloc CLI entry point."""

import logging
import sys
from typing import Optional

import click

from .exceptions import (
    InvalidPortRange,
    PortAllocError,
    PortBusy,
    ReleaseError,
    ResolutionError,
)
from .prober import alloc, alloc_first_in_range, alloc_in_range, alloc_in_slice
from .settings import get_settings
from .tui import print_error, print_port, print_ports

logger = logging.getLogger(__name__)

EXIT_BUSY = 1
EXIT_INVALID = 2
EXIT_BIND = 3
EXIT_RELEASE = 4


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    """Configure root logging once; later calls are no-ops."""
    if logging.root.handlers:
        return
    handlers = [logging.FileHandler(log_file, encoding="utf-8", mode="a")] if log_file else None
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def exit_code_for(error: PortAllocError) -> int:
    """Map an allocation error to the process exit code."""
    if isinstance(error, PortBusy):
        return EXIT_BUSY
    if isinstance(error, (InvalidPortRange, ResolutionError)):
        return EXIT_INVALID
    if isinstance(error, ReleaseError):
        return EXIT_RELEASE
    # BindError and anything unclassified
    return EXIT_BIND


def fail(error: PortAllocError) -> None:
    """Report an allocation error and exit."""
    if isinstance(error, ReleaseError) and error.port is not None:
        # The port was allocated; report it before the close failure
        print_port(error.port)
    logger.warning("%s: %s", type(error).__name__, error)
    print_error(str(error))
    sys.exit(exit_code_for(error))


@click.group()
@click.option("--host", default=None, help="Bind host (default: all interfaces).")
@click.option("--log-level", default=None, help="Logging level (default: WARNING).")
@click.pass_context
def cli(ctx, host: Optional[str], log_level: Optional[str]):
    """portalloc - find free local TCP ports"""
    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_file)
    ctx.ensure_object(dict)
    ctx.obj["host"] = settings.host if host is None else host


@cli.command()
@click.argument("port", type=int)
@click.pass_context
def one(ctx, port: int):
    """Check a single port and print it if free."""
    logger.info("Probing port %s", port)
    try:
        print_port(alloc(port, ctx.obj["host"]))
    except PortAllocError as e:
        fail(e)


@cli.command("range")
@click.argument("from_port", type=int)
@click.argument("to_port", type=int)
@click.option("--first", is_flag=True, help="Stop at the first free port.")
@click.pass_context
def range_(ctx, from_port: int, to_port: int, first: bool):
    """Print free ports in FROM_PORT..TO_PORT (inclusive)."""
    logger.info("Probing ports %s-%s (first=%s)", from_port, to_port, first)
    try:
        if first:
            print_port(alloc_first_in_range(from_port, to_port, ctx.obj["host"]))
        else:
            print_ports(alloc_in_range(from_port, to_port, ctx.obj["host"]))
    except PortAllocError as e:
        fail(e)


@cli.command("set")
@click.argument("ports", type=int, nargs=-1, required=True)
@click.pass_context
def set_(ctx, ports: tuple[int, ...]):
    """Print the free ports among PORTS, in the given order."""
    logger.info("Probing %d ports", len(ports))
    try:
        print_ports(alloc_in_slice(ports, ctx.obj["host"]))
    except PortAllocError as e:
        fail(e)


@cli.command()
@click.option("--start", type=int, default=None, help="First port to try.")
@click.option("--size", type=click.IntRange(min=1), default=None, help="Number of ports to try.")
@click.pass_context
def find(ctx, start: Optional[int], size: Optional[int]):
    """Print the first free port starting from --start."""
    settings = get_settings()
    start = settings.search_start if start is None else start
    size = settings.search_size if size is None else size
    logger.info("Searching free port in %s-%s", start, start + size - 1)
    try:
        print_port(alloc_first_in_range(start, start + size - 1, ctx.obj["host"]))
    except PortAllocError as e:
        fail(e)


def entry():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    entry()
