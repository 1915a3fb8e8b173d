"""Port allocation errors.

Every failure raised by :mod:`portalloc.prober` is a subclass of
:class:`PortAllocError`, so callers can branch on the class instead of
matching message strings.
"""

from typing import Optional


class PortAllocError(Exception):
    """Base class for all port allocation errors."""

    def __init__(self, message: str, port: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.port = port
        # Set when closing the probe socket also failed after this error.
        self.release_error: Optional[OSError] = None


class InvalidPortRange(PortAllocError, ValueError):
    """Range bounds are reversed. Raised before any port is probed."""

    def __init__(self, from_port: int, to_port: int):
        super().__init__(
            f"invalid port range: to can't be lower than from ({from_port} > {to_port})"
        )
        self.from_port = from_port
        self.to_port = to_port


class ResolutionError(PortAllocError):
    """The candidate could not be turned into a bind address."""


class PortBusy(PortAllocError):
    """The port is already in use.

    For a first-fit range search ``from_port`` and ``to_port`` hold the
    searched bounds and ``port`` is None.
    """

    def __init__(
        self,
        message: str = "port is busy",
        port: Optional[int] = None,
        from_port: Optional[int] = None,
        to_port: Optional[int] = None,
    ):
        super().__init__(message, port=port)
        self.from_port = from_port
        self.to_port = to_port


class BindError(PortAllocError):
    """Binding failed for a reason other than the port being in use."""

    def __init__(self, message: str, port: Optional[int] = None, errno: Optional[int] = None):
        super().__init__(message, port=port)
        self.errno = errno


class ReleaseError(PortAllocError):
    """The probe succeeded but closing the socket failed.

    ``port`` is the allocated port; the close failure is the ``__cause__``.
    In batch calls a busy probe whose close failed raises this with
    ``port`` set to None, since nothing was allocated.
    """
