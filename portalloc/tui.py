"""Terminal output helpers for the portalloc CLI."""

import sys


def print_error(message: str) -> None:
    """Print an error message."""
    print(f"Error: {message}", file=sys.stderr)


def print_port(port: int) -> None:
    """Print a port number on its own line."""
    print(port)


def print_ports(ports: list[int]) -> None:
    """Print one port per line."""
    for port in ports:
        print_port(port)
