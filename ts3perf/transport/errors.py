# ts3perf/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Base class for transport-layer failures."""


class TransportOpenError(TransportError):
    """Dial failed (refused, unreachable, resolver error, dial timeout)."""


class TransportIOError(TransportError):
    """Read/write failed on an open connection, including peer hang-up."""


class TransportClosedError(TransportIOError):
    """Operation attempted while the transport is not open."""
