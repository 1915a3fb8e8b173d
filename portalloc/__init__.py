"""portalloc - probe and release local TCP ports."""

from .prober import (
    MAX_PORT,
    alloc,
    alloc_first_in_range,
    alloc_in_range,
    alloc_in_slice,
    is_port_available,
)
from .exceptions import (
    PortAllocError,
    InvalidPortRange,
    ResolutionError,
    PortBusy,
    BindError,
    ReleaseError,
)

__all__ = [
    "MAX_PORT",
    "alloc",
    "alloc_first_in_range",
    "alloc_in_range",
    "alloc_in_slice",
    "is_port_available",
    "PortAllocError",
    "InvalidPortRange",
    "ResolutionError",
    "PortBusy",
    "BindError",
    "ReleaseError",
]
