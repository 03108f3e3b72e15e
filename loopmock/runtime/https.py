"""TLS client entry points; same slots as ``loopmock.runtime.http``."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from loopmock.runtime.client import ClientRequest, IncomingResponse, RequestOptions

DEFAULT_PORT = 443
PROTOCOL = "https:"


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
    req = request(target, callback, **options)
    req.end()
    return req


request = _real_request
get = _get

REAL_REQUEST = _real_request
