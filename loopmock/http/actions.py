"""Scripted response actions.

Each action is a small dataclass with ``run(request, response, next)``.
``next()`` continues the pipeline; ``next(error)`` aborts it. An action may
call ``next`` before returning or later from a scheduled callback, but
only once.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from loopmock.config import get_settings
from loopmock.errors import RealNetworkDisabledError, ScriptedThrowError
from loopmock.runtime import http as runtime_http
from loopmock.runtime import https as runtime_https
from loopmock.runtime import timers
from loopmock.runtime.client import IncomingResponse, to_bytes

if TYPE_CHECKING:
    from loopmock.http.proxy import MockClientRequest

logger = logging.getLogger(__name__)

Next = Callable[..., None]


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def encode_body(body: Any, encoding: str | None = None) -> bytes:
    """Turn a scripted body into bytes; mappings and lists become JSON."""
    if isinstance(body, (Mapping, list)):
        return json.dumps(body).encode("utf-8")
    return to_bytes(body, encoding)


def _header_items(headers: Mapping[str, Any]) -> dict[str, str]:
    return {str(k): str(v) for k, v in headers.items()}


class Action:
    """Base class for scripted steps."""

    # actions that deliver the response themselves set this
    defers_response: ClassVar[bool] = False

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        raise NotImplementedError


@dataclass
class Compute(Action):
    """Run an arbitrary ``fn(request, response, next)``."""

    fn: Callable[[Any, Any, Next], Any]

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        self.fn(request, response, next)


@dataclass
class Delay(Action):
    """Continue after ``ms`` milliseconds on whatever clock is installed."""

    ms: float

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        timers.set_timeout(next, self.ms)


@dataclass
class Write(Action):
    chunk: Any
    encoding: str | None = None
    callback: Callable[[], Any] | None = None

    def __post_init__(self) -> None:
        if isinstance(self.chunk, str) and self.encoding:
            self.chunk = to_bytes(self.chunk, self.encoding)

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        response.push(encode_body(self.chunk))
        if self.callback is not None:
            self.callback()
        next()


@dataclass
class WriteHead(Action):
    """Set the status and merge headers; the headers are copied at declaration."""

    status_code: int | None = None
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        if self.headers is None and isinstance(self.status_code, Mapping):
            self.headers, self.status_code = self.status_code, None
        if self.headers is not None:
            self.headers = _header_items(self.headers)

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        if self.status_code is not None:
            response.status_code = self.status_code
        if self.headers:
            response.headers.update(self.headers)
        next()


@dataclass
class End(Action):
    """Optionally set the status, append a body, and close the body stream.

    A lone non-numeric argument is taken as the body.
    """

    status_code: Any = UNSET
    body: Any = UNSET

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        body = self.body
        if isinstance(self.status_code, int) and not isinstance(self.status_code, bool):
            response.status_code = self.status_code
        elif self.status_code is not UNSET:
            body = self.status_code
        if body is not UNSET and body is not None:
            response.push(encode_body(body))
        response.push(None)
        next()


@dataclass
class Send(Action):
    """Send a complete response: headers, status, body, end."""

    status_code: int = 200
    body: Any = ""
    headers: dict[str, str] | None = None

    def __post_init__(self) -> None:
        if self.headers is not None:
            self.headers = _header_items(self.headers)

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        if self.headers:
            response.headers.update(self.headers)
        response.status_code = self.status_code
        if self.body is not None:
            response.push(encode_body(self.body))
        response.push(None)
        next()


@dataclass
class EmitEvent(Action):
    event: str
    args: tuple[Any, ...] = ()

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        response.emit(self.event, *self.args)
        next()


@dataclass
class ThrowInRequest(Action):
    """Emit ``error`` on the request. The pipeline does not continue.

    The response body is closed and ``mock_response_done`` fires first,
    as for an error passed to ``next``.
    """

    error: Any

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        error = self.error
        if not isinstance(error, BaseException):
            error = ScriptedThrowError(str(error), value=error)
        response.push(None)
        request.emit("mock_response_done", response)
        request.emit("error", error)


@dataclass
class ForwardToNetwork(Action):
    """Replay the captured request against the real network.

    The real status, headers and body are relayed onto the mock response.
    The caller's response callback fires when the real headers arrive; the
    pipeline continues when the real body ends. Without ``body`` the
    captured writes are replayed as-is; with it, Content-Length is set.
    """

    defers_response: ClassVar[bool] = True

    url: str | None = None
    body: Any = None
    headers: dict[str, str] | None = field(default=None)

    def __post_init__(self) -> None:
        if self.headers is not None:
            self.headers = _header_items(self.headers)

    def run(self, request: MockClientRequest, response: IncomingResponse, next: Next) -> None:
        target = self.url or request.url
        if not get_settings().allow_real_network:
            next(RealNetworkDisabledError(url=target, method=request.method))
            return

        headers = dict(request.headers.items())
        if self.headers:
            headers.update(self.headers)
        payload = None
        if self.body is not None:
            payload = encode_body(self.body)
            headers = {k: v for k, v in headers.items() if k.lower() != "content-length"}
            headers["Content-Length"] = str(len(payload))

        factory = runtime_https.REAL_REQUEST if target.startswith("https:") else runtime_http.REAL_REQUEST
        logger.debug("forwarding %s %s to the network", request.method, target)

        def on_response(real: IncomingResponse) -> None:
            response.status_code = real.status_code
            response.headers.update(real.headers)
            request.deliver_response(response)
            real.on("data", response.push)
            real.on("end", lambda: next())

        real_request = factory(target, on_response, method=request.method, headers=headers)
        real_request.on("error", next)

        if payload is not None:
            real_request.end(payload)
            return
        for entry in request.mock_writes:
            if entry is None:
                real_request.end()
            else:
                real_request.write(*entry)
