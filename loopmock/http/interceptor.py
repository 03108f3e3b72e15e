"""Installation of the mock request factories.

HttpInterceptor owns the original and replacement factories of
``loopmock.runtime.http`` and ``loopmock.runtime.https``. The module-level
functions keep one active interceptor for the common case:

    routes = mock_http()
    routes.when("http://api.local/ping").send(200, "pong")
    ...
    unmock_http()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from loopmock.http.proxy import MockClientRequest
from loopmock.http.routes import Handler, RouteTable
from loopmock.runtime import http as runtime_http
from loopmock.runtime import https as runtime_https
from loopmock.runtime import timers
from loopmock.runtime.client import IncomingResponse, RequestOptions

logger = logging.getLogger(__name__)

_MODULES = (runtime_http, runtime_https)


class HttpInterceptor:
    """Swaps the request factories for ones that feed ``handler``.

    install() and uninstall() are idempotent. The factories that were in
    place at install time are the ones put back.
    """

    def __init__(self, handler: Handler) -> None:
        self.handler = handler
        self.installed = False
        self._saved: dict[Any, Callable[..., Any]] = {}

    def make_factory(self, default_port: int, protocol: str) -> Callable[..., MockClientRequest]:
        handler = self.handler

        def request(
            target: str | Mapping[str, Any] | RequestOptions | None = None,
            callback: Callable[[IncomingResponse], Any] | None = None,
            **options: Any,
        ) -> MockClientRequest:
            opts = RequestOptions.build(target, default_port=default_port, protocol=protocol, **options)
            req = MockClientRequest(opts, callback)
            res = IncomingResponse()
            timers.set_immediate(handler, req, res)
            return req

        request.mocked = True  # type: ignore[attr-defined]
        return request

    def install(self) -> HttpInterceptor:
        """Swap in the mock factories, replacing any other installed interceptor."""
        global _installed
        if self.installed:
            return self
        if _installed is not None and _installed is not self:
            _installed.uninstall()
        for module in _MODULES:
            self._saved[module] = module.request
            module.request = self.make_factory(module.DEFAULT_PORT, module.PROTOCOL)
        self.installed = True
        _installed = self
        logger.debug("http interception installed")
        return self

    def uninstall(self) -> HttpInterceptor:
        global _installed
        if not self.installed:
            return self
        for module, original in self._saved.items():
            module.request = original
        self._saved.clear()
        self.installed = False
        if _installed is self:
            _installed = None
        logger.debug("http interception removed")
        return self

    def __enter__(self) -> HttpInterceptor:
        return self.install()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.uninstall()


_installed: HttpInterceptor | None = None
_active: HttpInterceptor | None = None


def mock_http(handler: Handler | None = None) -> RouteTable | None:
    """Route every request made through the runtime factories to ``handler``.

    Without a handler a fresh RouteTable is created and returned so routes
    can be declared on it. An interceptor that is already active is
    replaced, never stacked.
    """
    global _active
    routes = None
    if handler is None:
        routes = RouteTable()
        handler = routes.make_handler()

    unmock_http()
    _active = HttpInterceptor(handler).install()
    return routes


def unmock_http() -> None:
    """Restore the real request factories. Safe to call when not mocked."""
    global _active
    if _active is not None:
        _active.uninstall()
        _active = None
    if _installed is not None:
        _installed.uninstall()


def install() -> None:
    """Re-install the active interceptor after uninstall()."""
    if _active is not None:
        _active.install()


def uninstall() -> None:
    """Temporarily restore the real factories, keeping the active routes."""
    if _active is not None:
        _active.uninstall()


def active_interceptor() -> HttpInterceptor | None:
    return _active
