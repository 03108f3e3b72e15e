"""Plain-HTTP client entry points.

``request`` and ``get`` are slots: the interception layer replaces them while
mocking is installed, so callers should use ``http.request(...)`` through the
module rather than importing the function.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from loopmock.runtime.client import ClientRequest, IncomingResponse, RequestOptions

DEFAULT_PORT = 80
PROTOCOL = "http:"


def _real_request(
    target: str | Mapping[str, Any] | RequestOptions | None = None,
    callback: Callable[[IncomingResponse], Any] | None = None,
    **options: Any,
) -> ClientRequest:
    opts = RequestOptions.build(target, default_port=DEFAULT_PORT, protocol=PROTOCOL, **options)
    return ClientRequest(opts, callback)


def _get(
    target: str | Mapping[str, Any] | RequestOptions | None = None,
    callback: Callable[[IncomingResponse], Any] | None = None,
    **options: Any,
) -> ClientRequest:
    """Issue a GET through the current ``request`` slot and end it."""
    req = request(target, callback, **options)
    req.end()
    return req


request = _real_request
get = _get

REAL_REQUEST = _real_request
