"""Shared fixtures for portalloc tests."""

import errno
import socket
from collections.abc import Callable, Generator

import pytest

SEARCH_START = 20000
SEARCH_END = 21000


def _bindable(port: int) -> bool:
    """Check a port with a plain socket, independent of portalloc.

    Uses the same wildcard the prober binds: dual-stack ``[::]`` where
    available, ``0.0.0.0`` otherwise.
    """
    if socket.has_dualstack_ipv6():
        family, address = socket.AF_INET6, ("::", port)
    else:
        family, address = socket.AF_INET, ("", port)
    with socket.socket(family, socket.SOCK_STREAM) as s:
        if family == socket.AF_INET6:
            s.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
        try:
            s.bind(address)
        except OSError:
            return False
        return True


@pytest.fixture
def free_pair() -> tuple[int, int]:
    """Two adjacent ports that are currently free, near 20000."""
    for port in range(SEARCH_START, SEARCH_END):
        if _bindable(port) and _bindable(port + 1):
            return port, port + 1
    pytest.skip(f"no two adjacent free ports in {SEARCH_START}-{SEARCH_END}")


# (family, host, IPV6_V6ONLY) of the listener holding a port
HOLDERS = {
    "ipv4-wildcard": (socket.AF_INET, "", None),
    "ipv6-loopback": (socket.AF_INET6, "::1", None),
    "ipv6-only-wildcard": (socket.AF_INET6, "::", 1),
}


@pytest.fixture(params=list(HOLDERS))
def hold_port(request) -> Generator[Callable[[int], None]]:
    """Bind and listen on ports for the duration of a test.

    Parametrized over every kind of listener the wildcard probe must
    report as busy.
    """
    family, host, v6only = HOLDERS[request.param]
    if family == socket.AF_INET6 and not socket.has_dualstack_ipv6():
        pytest.skip("dual-stack IPv6 not available")

    held = []

    def _hold(port: int) -> None:
        s = socket.socket(family, socket.SOCK_STREAM)
        try:
            if v6only is not None:
                s.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, v6only)
            s.bind((host, port))
            s.listen(1)
        except OSError as e:
            s.close()
            if e.errno == errno.EADDRNOTAVAIL:
                pytest.skip(f"cannot bind {host!r}: {e}")
            raise
        held.append(s)

    yield _hold

    for s in held:
        s.close()


class FakeSocket:
    """Stand-in for socket.socket with injectable failures."""

    def __init__(self, bind_error=None, close_error=None, sockname=("0.0.0.0", 4242)):
        self.bind_error = bind_error
        self.close_error = close_error
        self.sockname = sockname
        self.closed = False
        self.options = []
        self.address = None

    def setsockopt(self, *args):
        self.options.append(args)

    def bind(self, address):
        self.address = address
        if self.bind_error is not None:
            raise self.bind_error

    def listen(self, backlog):
        pass

    def getsockname(self):
        if isinstance(self.sockname, OSError):
            raise self.sockname
        return self.sockname

    def close(self):
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def fake_socket(monkeypatch) -> Callable[..., FakeSocket]:
    """Replace socket creation in the prober with a FakeSocket."""
    from portalloc import prober

    def _install(**kwargs) -> FakeSocket:
        fake = FakeSocket(**kwargs)
        # has_dualstack_ipv6() opens a real socket; evaluate it before patching
        dualstack = prober.socket.has_dualstack_ipv6()
        monkeypatch.setattr(prober.socket, "has_dualstack_ipv6", lambda: dualstack)
        monkeypatch.setattr(prober.socket, "socket", lambda *args, **kw: fake)
        return fake

    return _install
