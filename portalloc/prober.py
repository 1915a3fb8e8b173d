"""Port utilities for probing available TCP ports.

Each probe binds a listening socket and closes it before returning, so a
free answer is only true at the moment of the probe. Another process can
take the port before the caller binds it.
"""

import errno
import logging
import socket
from typing import Iterable, Optional

from .exceptions import (
    BindError,
    InvalidPortRange,
    PortAllocError,
    PortBusy,
    ReleaseError,
    ResolutionError,
)

logger = logging.getLogger(__name__)

MAX_PORT = 65535

_ADDR_IN_USE = {errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)}


def _resolve(port: int, host: str) -> tuple:
    """Resolve the passive bind address for host:port.

    An empty host means every local interface: the dual-stack ``[::]``
    wildcard where the platform supports it, ``0.0.0.0`` otherwise.
    """
    if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= MAX_PORT:
        raise ResolutionError(
            f"failed to resolve TCP address: invalid port {port!r}", port=None
        )

    if not host and socket.has_dualstack_ipv6():
        return socket.AF_INET6, socket.SOCK_STREAM, 0, ("::", port, 0, 0)

    try:
        infos = socket.getaddrinfo(
            host or None,
            port,
            socket.AF_INET if not host else socket.AF_UNSPEC,
            socket.SOCK_STREAM,
            0,
            socket.AI_PASSIVE,
        )
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(f"failed to resolve TCP address: {e}", port=port) from e

    if not infos:
        raise ResolutionError(f"failed to resolve TCP address: no address for {host!r}", port=port)

    family, socktype, proto, _, sockaddr = infos[0]
    return family, socktype, proto, sockaddr


def _set_reuse(sock: socket.socket) -> None:
    # SO_REUSEADDR on Windows lets a second socket steal a bound port.
    if hasattr(socket, "SO_EXCLUSIVEADDRUSE"):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_EXCLUSIVEADDRUSE, 1)
    else:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)


def _listen(sock: socket.socket, family: int, sockaddr: tuple, port: int) -> int:
    """Bind and listen, returning the port read back from the socket."""
    try:
        _set_reuse(sock)
        if family == socket.AF_INET6 and sockaddr[0] == "::":
            # Wildcard must also conflict with IPv4 listeners
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        sock.bind(sockaddr)
        sock.listen(1)
    except OSError as e:
        if e.errno in _ADDR_IN_USE:
            raise PortBusy(port=port) from e
        raise BindError(f"failed to allocate TCP port {port}: {e}", port=port, errno=e.errno) from e

    try:
        bound = sock.getsockname()
    except OSError as e:
        raise BindError(f"failed to read bound address: {e}", port=port, errno=e.errno) from e

    if not isinstance(bound, tuple) or len(bound) < 2 or not isinstance(bound[1], int):
        raise BindError(f"failed to interpret bound address {bound!r}", port=port)

    return bound[1]


def _close(sock: socket.socket) -> Optional[OSError]:
    """Close the socket and return the close failure, if any."""
    try:
        sock.close()
    except OSError as e:
        return e
    return None


def alloc(port: int, host: str = "") -> int:
    """Try to allocate the given port and release it immediately.

    Port 0 asks the OS for any free port; the port it picked is returned.

    Raises:
        ResolutionError: port is out of range or host cannot be resolved.
        PortBusy: the port is already in use.
        BindError: binding failed for any other reason.
        ReleaseError: the port was allocated but closing the socket failed.
            The allocated port is available as ``.port``.
    """
    family, socktype, proto, sockaddr = _resolve(port, host)

    try:
        sock = socket.socket(family, socktype, proto)
    except OSError as e:
        raise BindError(f"failed to create socket: {e}", port=port, errno=e.errno) from e

    try:
        allocated = _listen(sock, family, sockaddr, port)
    except PortAllocError as e:
        e.release_error = _close(sock)
        raise
    except BaseException:
        _close(sock)
        raise

    release_error = _close(sock)
    if release_error is not None:
        raise ReleaseError(
            f"port {allocated} allocated but socket close failed: {release_error}",
            port=allocated,
        ) from release_error

    return allocated


def is_port_available(port: int, host: str = "") -> bool:
    """Check if a port is available for binding."""
    try:
        alloc(port, host)
    except PortBusy:
        return False
    except ReleaseError:
        # Bind worked; only the close failed.
        return True
    return True


def _skip_busy(error: PortBusy, port: int) -> None:
    """Skip a busy port, unless closing its probe socket also failed."""
    if error.release_error is not None:
        raise ReleaseError(
            f"port {port} is busy and socket close failed: {error.release_error}",
            port=None,
        ) from error.release_error
    logger.debug("Port %s is busy, trying next", port)


def alloc_in_slice(ports: Iterable[int], host: str = "") -> list[int]:
    """Try to allocate each port in the given sequence.

    Busy ports are skipped. Any other error aborts the whole call.
    Returns the free ports in input order.
    """
    free_ports = []
    for port in ports:
        try:
            free_ports.append(alloc(port, host))
        except PortBusy as e:
            _skip_busy(e, port)
    return free_ports


def alloc_in_range(from_port: int, to_port: int, host: str = "") -> list[int]:
    """Try to allocate each port in [from_port, to_port].

    Returns the list of free ports in ascending order.
    """
    if from_port > to_port:
        raise InvalidPortRange(from_port, to_port)
    return alloc_in_slice(range(from_port, to_port + 1), host)


def alloc_first_in_range(from_port: int, to_port: int, host: str = "") -> int:
    """
    Find the first available port in [from_port, to_port].
    Raises PortBusy if every port in the range is in use.
    """
    if from_port > to_port:
        raise InvalidPortRange(from_port, to_port)

    for port in range(from_port, to_port + 1):
        try:
            return alloc(port, host)
        except PortBusy as e:
            _skip_busy(e, port)

    raise PortBusy(
        f"no available port found in range {from_port}-{to_port}",
        from_port=from_port,
        to_port=to_port,
    )
