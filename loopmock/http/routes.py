"""Route table: scripted mock server behind the intercepted request factories.

Example:
    >>> from loopmock.http import mock_http
    >>>
    >>> routes = mock_http()
    >>> routes.when("GET:http://api.local/users").send(200, {"users": []})
    >>> routes.once("/flaky").send(503, "try again")
    >>> routes.when(re.compile(r"/slow/")).delay(50).send(200, "eventually")
    >>> routes.default().send(404, "not found")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from loopmock.config import get_settings
from loopmock.errors import NoRouteMatchedError
from loopmock.http.actions import (
    UNSET,
    Action,
    Compute,
    Delay,
    EmitEvent,
    End,
    ForwardToNetwork,
    Send,
    ThrowInRequest,
    Write,
    WriteHead,
)
from loopmock.http.matchers import AnyCondition, Matcher, make_condition
from loopmock.http.pipeline import RequestPipeline
from loopmock.http.proxy import MockClientRequest
from loopmock.http.urls import build_url
from loopmock.runtime.client import IncomingResponse

if TYPE_CHECKING:
    from loopmock.http.transport import RouteTransport

logger = logging.getLogger(__name__)

Handler = Callable[[MockClientRequest, IncomingResponse], None]


@dataclass
class RequestRecord:
    """A request seen by the route table."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes
    route: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def matched(self) -> bool:
        return self.route is not None


def _as_action(action: Action | Callable[..., Any]) -> Action:
    return action if isinstance(action, Action) else Compute(action)


class RouteTable:
    """Ordered routes plus the before/after actions that wrap every request.

    Builder calls append to the "current" action list. That list starts as
    the before list, moves to a new route on when()/on()/once()/default(),
    and can be pointed back at the before or after list with before() and
    after() called without an argument.
    """

    def __init__(self) -> None:
        self.matchers: list[Matcher] = []
        self.before_actions: list[Action] = []
        self.after_actions: list[Action] = []
        self._current: list[Action] = self.before_actions
        self.calls: list[RequestRecord] = []
        self.unmatched: list[RequestRecord] = []

    # Phase focus

    def before(self, action: Action | Callable[..., Any] | None = None) -> RouteTable:
        if action is not None:
            self.before_actions.append(_as_action(action))
        else:
            self._current = self.before_actions
        return self

    def after(self, action: Action | Callable[..., Any] | None = None) -> RouteTable:
        if action is not None:
            self.after_actions.append(_as_action(action))
        else:
            self._current = self.after_actions
        return self

    # Routes

    def when(self, condition: Any) -> RouteTable:
        """Start a route that matches any number of requests."""
        return self._add_matcher(Matcher(make_condition(condition)))

    on = when

    def once(self, condition: Any) -> RouteTable:
        """Start a route that matches a single request."""
        return self._add_matcher(Matcher(make_condition(condition), uses_remaining=1))

    def default(self) -> RouteTable:
        """Start a catch-all route; declare it last."""
        return self._add_matcher(Matcher(AnyCondition()))

    def _add_matcher(self, matcher: Matcher) -> RouteTable:
        self.matchers.append(matcher)
        self._current = matcher.actions
        return self

    # Actions

    def add_action(self, action: Action) -> RouteTable:
        self._current.append(action)
        return self

    def compute(self, fn: Callable[..., Any]) -> RouteTable:
        return self.add_action(Compute(fn))

    def delay(self, ms: float) -> RouteTable:
        return self.add_action(Delay(ms))

    def throw(self, error: Any) -> RouteTable:
        return self.add_action(ThrowInRequest(error))

    def emit(self, event: str, *args: Any) -> RouteTable:
        return self.add_action(EmitEvent(event, args))

    def write(
        self,
        chunk: Any,
        encoding: str | None = None,
        callback: Callable[[], Any] | None = None,
    ) -> RouteTable:
        return self.add_action(Write(chunk, encoding, callback))

    def write_head(self, status_code: Any = None, headers: dict[str, Any] | None = None) -> RouteTable:
        return self.add_action(WriteHead(status_code, headers))

    def end(self, status_code: Any = UNSET, body: Any = UNSET) -> RouteTable:
        return self.add_action(End(status_code, body))

    def send(self, status_code: Any = UNSET, body: Any = UNSET, headers: dict[str, Any] | None = None) -> RouteTable:
        """Send a whole response.

        Accepts ``send(fn)`` for a computed response, ``send(status)``,
        ``send(body)``, or ``send(status, body, headers)``.
        """
        if body is UNSET and headers is None:
            if callable(status_code):
                return self.compute(status_code)
            if isinstance(status_code, int) and not isinstance(status_code, bool):
                body = ""
            else:
                body = "" if status_code is UNSET else status_code
                status_code = 200
        elif status_code is UNSET:
            status_code = 200
        if body is UNSET:
            body = ""
        return self.add_action(Send(status_code, body, headers))

    def make_request(
        self,
        url: str | None = None,
        body: Any = None,
        headers: dict[str, Any] | None = None,
    ) -> RouteTable:
        """Forward the request to the real network and relay the answer."""
        return self.add_action(ForwardToNetwork(url, body, headers))

    # Dispatch

    def find_matcher(self, request: MockClientRequest, response: IncomingResponse) -> Matcher | None:
        """Return the first route with uses left that accepts the request."""
        for matcher in self.matchers:
            if matcher.accepts(request, response):
                return matcher
        return None

    def make_handler(self) -> Handler:
        """Build the handler that the interceptor runs for every request.

        The handler waits for ``end()`` before looking at the request.
        """

        def handle(request: MockClientRequest, response: IncomingResponse) -> None:
            if request.write_ended:
                self.dispatch(request, response)
                return

            def on_write(chunk: Any, encoding: str | None) -> None:
                if chunk is None:
                    request.off("mock_write", on_write)
                    self.dispatch(request, response)

            request.on("mock_write", on_write)

        return handle

    def dispatch(self, request: MockClientRequest, response: IncomingResponse) -> None:
        if request.destroyed:
            logger.debug("skipping aborted request %s %s", request.method, request.url)
            return

        matcher = self.find_matcher(request, response)
        url = build_url(request.options)

        if matcher is None:
            logger.debug("no route for %s %s", request.method, url)
            self._record(self.unmatched, request, url, None)
            request.emit("error", NoRouteMatchedError(url, method=request.method))
            return

        matcher.claim()
        logger.debug("route %s matched %s %s", matcher.description, request.method, url)
        self._record(self.calls, request, url, matcher.description)
        RequestPipeline(
            request,
            response,
            self.before_actions,
            matcher.actions,
            self.after_actions,
        ).start()

    def _record(
        self,
        records: list[RequestRecord],
        request: MockClientRequest,
        url: str,
        route: str | None,
    ) -> None:
        if len(records) >= get_settings().record_limit:
            return
        records.append(
            RequestRecord(
                method=request.method,
                url=url,
                headers=dict(request.headers.items()),
                body=request.body,
                route=route,
            )
        )

    # History

    def was_called(self, condition: str) -> bool:
        return self.call_count(condition) > 0

    def call_count(self, condition: str) -> int:
        """Number of requests dispatched to routes declared with ``condition``."""
        return sum(m.call_count for m in self.matchers if m.description == condition)

    def get_calls(self, condition: str | None = None) -> list[RequestRecord]:
        if condition is None:
            return self.calls.copy()
        return [record for record in self.calls if record.route == condition]

    def get_last_call(self, condition: str | None = None) -> RequestRecord | None:
        calls = self.get_calls(condition)
        return calls[-1] if calls else None

    def reset_calls(self) -> None:
        for matcher in self.matchers:
            matcher.call_count = 0
        self.calls.clear()
        self.unmatched.clear()

    def reset(self) -> None:
        """Drop every route, phase action and recorded call."""
        self.matchers.clear()
        self.before_actions.clear()
        self.after_actions.clear()
        self._current = self.before_actions
        self.reset_calls()

    # httpx

    def async_transport(self) -> RouteTransport:
        """An httpx transport that runs ``httpx.AsyncClient`` requests through these routes.

        Example:
            >>> routes = RouteTable()
            >>> routes.when("GET:http://api.local/ping").send(200, "pong")
            >>> async with httpx.AsyncClient(transport=routes.async_transport()) as client:
            ...     response = await client.get("http://api.local/ping")
        """
        from loopmock.http.transport import RouteTransport

        return RouteTransport(self.make_handler())

    def __enter__(self) -> RouteTable:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.reset()

