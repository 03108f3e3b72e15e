"""Swappable runtime surface: timers and HTTP client entry points.

Mocks replace the slot functions on these modules, so application code
should reach them through the module object (``timers.set_timeout``,
``http.request``) at call time.
"""

from loopmock.runtime import http, https, timers
from loopmock.runtime.client import (
    ClientRequest,
    IncomingResponse,
    RequestOptions,
    RequestSocket,
    to_bytes,
)
from loopmock.runtime.events import EventEmitter

__all__ = [
    "ClientRequest",
    "EventEmitter",
    "IncomingResponse",
    "RequestOptions",
    "RequestSocket",
    "http",
    "https",
    "timers",
    "to_bytes",
]
