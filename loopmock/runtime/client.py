"""Outbound request and incoming response objects.

ClientRequest is the object caller code receives from
``loopmock.runtime.http.request()``: it collects the body through write()
and end(), then performs the call with httpx on the running event loop and
hands an IncomingResponse to the response callback. The interception layer
subclasses ClientRequest so mocked and real requests look the same to the
caller.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from typing import Any
from urllib.parse import urlsplit

import httpx

from loopmock.config import get_settings
from loopmock.errors import AbortedRequestError, InvalidArgumentError
from loopmock.runtime.events import EventEmitter
from loopmock.runtime.timers import next_tick

logger = logging.getLogger(__name__)


def to_bytes(chunk: Any, encoding: str | None = None) -> bytes:
    """Convert a body chunk to bytes the way a socket write would."""
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, (bytearray, memoryview)):
        return bytes(chunk)
    if isinstance(chunk, str):
        if encoding == "hex":
            return bytes.fromhex(chunk)
        if encoding == "base64":
            return base64.b64decode(chunk)
        return chunk.encode(encoding or "utf-8")
    return str(chunk).encode("utf-8")


@dataclass
class RequestOptions:
    """Snapshot of what a request was asked to do.

    ``path`` keeps the query string; ``pathname`` drops it. ``href`` is only
    set when the request was created from a full URL string.
    """

    method: str = "GET"
    protocol: str = "http:"
    hostname: str | None = None
    host: str | None = None
    port: int | None = None
    path: str = "/"
    href: str | None = None
    headers: dict[str, Any] = field(default_factory=dict)
    auth: str | None = None
    timeout: float | None = None
    default_port: int = 80

    @property
    def scheme(self) -> str:
        return self.protocol.rstrip(":")

    @property
    def pathname(self) -> str:
        return (self.path or "/").split("?", 1)[0] or "/"

    @property
    def url(self) -> str:
        """Full URL including the query string."""
        if self.href:
            return self.href
        host = self.hostname or self.host or "localhost"
        port = f":{self.port}" if self.port else ""
        return f"{self.scheme}://{host}{port}{self.path or '/'}"

    @classmethod
    def build(
        cls,
        target: str | Mapping[str, Any] | RequestOptions | None = None,
        *,
        default_port: int = 80,
        protocol: str = "http:",
        **overrides: Any,
    ) -> RequestOptions:
        """Build options from a URL string, a mapping or keyword options.

        Raises:
            InvalidArgumentError: For targets of other types or unknown option names.
        """
        values: dict[str, Any] = {"default_port": default_port, "protocol": protocol}

        if isinstance(target, RequestOptions):
            return replace(target, **overrides) if overrides else replace(target)
        if isinstance(target, str):
            values.update(parse_url(target))
        elif isinstance(target, Mapping):
            target = dict(target)
            if "url" in target:
                values.update(parse_url(target.pop("url")))
            values.update(target)
        elif target is not None:
            raise InvalidArgumentError(
                f"request target must be a URL, mapping or RequestOptions, got {type(target).__name__}"
            )
        values.update(overrides)

        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise InvalidArgumentError(f"unknown request options: {sorted(unknown)}")

        values["method"] = str(values.get("method") or "GET").upper()
        if values.get("protocol") and not str(values["protocol"]).endswith(":"):
            values["protocol"] = f"{values['protocol']}:"
        values["headers"] = dict(values.get("headers") or {})
        values["path"] = values.get("path") or "/"
        return cls(**values)


def parse_url(url: str) -> dict[str, Any]:
    """Split a URL string into request option fields."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        # bare path, or nothing at all
        return {"path": url or "/"}

    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    href = f"{parts.scheme}://{parts.netloc}{path}"
    if parts.fragment:
        href = f"{href}#{parts.fragment}"

    values: dict[str, Any] = {
        "protocol": f"{parts.scheme}:",
        "hostname": parts.hostname,
        "host": parts.netloc.rsplit("@", 1)[-1],
        "path": path,
        "href": href,
    }
    if parts.port is not None:
        values["port"] = parts.port
    if parts.username is not None:
        values["auth"] = f"{parts.username}:{parts.password or ''}"
    return values


class RequestSocket:
    """The transport-level handle of a request; destroying it aborts the request."""

    def __init__(self, request: ClientRequest) -> None:
        self._request = request

    @property
    def destroyed(self) -> bool:
        return self._request.destroyed

    def destroy(self, error: BaseException | None = None) -> None:
        self._request.destroy(error)


class ClientRequest(EventEmitter):
    """An outbound HTTP request.

    Events:
        response(IncomingResponse): headers have arrived
        error(Exception): the request failed or was aborted
        close(): the request was torn down
        timeout(): the configured timeout expired
    """

    def __init__(
        self,
        options: RequestOptions,
        callback: Callable[[IncomingResponse], Any] | None = None,
    ) -> None:
        super().__init__()
        self.options = options
        self.method = options.method
        self.path = options.path
        self.headers = httpx.Headers({k: str(v) for k, v in options.headers.items()})
        if options.auth and "authorization" not in self.headers:
            token = base64.b64encode(options.auth.encode("utf-8")).decode("ascii")
            self.headers["Authorization"] = f"Basic {token}"
        self.socket = RequestSocket(self)
        self.finished = False
        self.destroyed = False
        self.timeout_ms = options.timeout
        self._body: list[bytes] = []
        self._task: asyncio.Task[None] | None = None

        if callback is not None:
            self.once("response", callback)

    @property
    def url(self) -> str:
        return self.options.url

    def set_header(self, name: str, value: Any) -> None:
        self.headers[name] = str(value)

    def get_header(self, name: str) -> str | None:
        return self.headers.get(name)

    def remove_header(self, name: str) -> None:
        if name in self.headers:
            del self.headers[name]

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def set_timeout(self, ms: float, callback: Callable[[], Any] | None = None) -> ClientRequest:
        self.timeout_ms = ms
        if callback is not None:
            self.once("timeout", callback)
        return self

    def write(self, chunk: Any, encoding: str | None = None) -> bool:
        if chunk is None:
            raise InvalidArgumentError("write() chunk must not be None; call end() instead")
        if self.destroyed or self.finished:
            return False
        self._body.append(to_bytes(chunk, encoding))
        return True

    def end(self, chunk: Any = None, encoding: str | None = None) -> ClientRequest:
        if self.finished or self.destroyed:
            return self
        if chunk is not None:
            self.write(chunk, encoding)
        self.finished = True
        self._send()
        return self

    def abort(self) -> None:
        self.destroy()

    def destroy(self, error: BaseException | None = None) -> ClientRequest:
        """Cancel the request; emits error and close on the next tick."""
        if self.destroyed:
            return self
        self.destroyed = True
        self._discard()
        if error is None:
            error = AbortedRequestError(url=self.url, method=self.method)
        next_tick(self._emit_destroyed, error)
        return self

    def _emit_destroyed(self, error: BaseException) -> None:
        self.emit("error", error)
        self.emit("close")

    def _discard(self) -> None:
        self._body.clear()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _send(self) -> None:
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._perform())

    async def _perform(self) -> None:
        settings = get_settings()
        timeout = self.timeout_ms / 1000 if self.timeout_ms else settings.real_request_timeout
        logger.debug("real request %s %s", self.method, self.url)
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                async with client.stream(
                    self.method,
                    self.url,
                    headers=self.headers,
                    content=b"".join(self._body),
                ) as upstream:
                    response = IncomingResponse(upstream.status_code, upstream.headers)
                    self.emit("response", response)
                    async for chunk in upstream.aiter_raw():
                        response.push(chunk)
                    response.push(None)
        except httpx.TimeoutException as err:
            self.emit("timeout")
            self.emit("error", err)
        except httpx.HTTPError as err:
            self.emit("error", err)


class IncomingResponse(EventEmitter):
    """Readable side of a response.

    Producers push() body chunks and finally push(None). Consumers either
    subscribe to "data"/"end", call read() for whatever is buffered, or
    ``await aread()`` for the whole body. ``content`` always holds every
    byte pushed so far.

    Chunks wait in the buffer until the stream flows: subscribing to
    "data" or "end", resume() and aread() start it. "end" is emitted only
    once the buffer is drained, so a body completed before anyone
    subscribed is still delivered to later listeners.
    """

    def __init__(
        self,
        status_code: int | None = None,
        headers: Mapping[str, str] | httpx.Headers | None = None,
    ) -> None:
        super().__init__()
        self.status_code = status_code
        self.headers = httpx.Headers(headers or {})
        self.complete = False
        self._pending: list[bytes] = []
        self._received = bytearray()
        self._encoding: str | None = None
        self._flowing = False
        self._end_emitted = False
        self._consumed = False
        self._flush_scheduled = False

    @property
    def content(self) -> bytes:
        return bytes(self._received)

    @property
    def text(self) -> str:
        return self.content.decode(self._encoding or "utf-8")

    @property
    def ended(self) -> bool:
        return self._end_emitted

    def push(self, chunk: Any) -> bool:
        if self.complete:
            return False
        if chunk is None:
            self.complete = True
        else:
            data = to_bytes(chunk)
            self._pending.append(data)
            self._received.extend(data)
        self._schedule_flush()
        return True

    def set_encoding(self, encoding: str) -> IncomingResponse:
        self._encoding = encoding
        return self

    def pause(self) -> IncomingResponse:
        self._flowing = False
        return self

    def resume(self) -> IncomingResponse:
        self._flowing = True
        self._schedule_flush()
        return self

    def read(self) -> bytes | str:
        """Take everything buffered but not yet delivered."""
        data = b"".join(self._pending)
        self._pending.clear()
        self._consumed = True
        if self.complete:
            self._schedule_flush()
        return data.decode(self._encoding) if self._encoding else data

    async def aread(self) -> bytes:
        """Wait for the end of the body and return all of it."""
        if not self._end_emitted:
            waiter = asyncio.get_running_loop().create_future()
            self.once("end", lambda: waiter.done() or waiter.set_result(None))
            await waiter
        return self.content

    def _listener_added(self, event: str) -> None:
        if event in ("data", "end") and not self._end_emitted:
            self._flowing = True
            self._schedule_flush()

    def _schedule_flush(self) -> None:
        if self._flush_scheduled:
            return
        self._flush_scheduled = True
        next_tick(self._flush)

    def _flush(self) -> None:
        self._flush_scheduled = False
        if self._flowing:
            while self._pending:
                chunk = self._pending.pop(0)
                self.emit("data", chunk.decode(self._encoding) if self._encoding else chunk)
        if self.complete and not self._pending and not self._end_emitted:
            if self._flowing or self._consumed:
                self._end_emitted = True
                self.emit("end")
