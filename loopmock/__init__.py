"""loopmock - test doubles for event-loop code.

Scripted HTTP responses, a manually advanced clock, module substitution,
and spies/stubs/expectations.

Example:
    >>> from loopmock import mock_http, mock_timers
    >>> from loopmock.runtime import http
    >>>
    >>> clock = mock_timers()
    >>> routes = mock_http()
    >>> routes.when("GET:http://api.local/ping").send(200, "pong")
    >>> req = http.get("http://api.local/ping", lambda res: print(res.status_code))
    >>> clock.advance(5)
    200
"""

from loopmock.config import MockSettings, configure, get_settings
from loopmock.errors import (
    AbortedRequestError,
    ErrorCode,
    InvalidArgumentError,
    InvalidMatcherError,
    LoopMockError,
    ModuleMockError,
    NoRouteMatchedError,
    PipelinePhaseError,
    RealNetworkDisabledError,
    ScriptedThrowError,
)
from loopmock.http import (
    HttpInterceptor,
    RouteTable,
    build_url,
    mock_http,
    parse_annotated_url,
    unmock_http,
)
from loopmock.modules import mock_module, mock_module_stub, require, unload, unmock_module
from loopmock.recording import (
    MockRegistry,
    Spy,
    Stub,
    VerificationError,
    spy,
    stub,
)
from loopmock.timers import VirtualClock, mock_timers, unmock_timers

__version__ = "0.4.0"

__all__ = [
    "AbortedRequestError",
    "ErrorCode",
    "HttpInterceptor",
    "InvalidArgumentError",
    "InvalidMatcherError",
    "LoopMockError",
    "MockRegistry",
    "MockSettings",
    "ModuleMockError",
    "NoRouteMatchedError",
    "PipelinePhaseError",
    "RealNetworkDisabledError",
    "RouteTable",
    "ScriptedThrowError",
    "Spy",
    "Stub",
    "VerificationError",
    "VirtualClock",
    "build_url",
    "configure",
    "get_settings",
    "mock_http",
    "mock_module",
    "mock_module_stub",
    "mock_timers",
    "parse_annotated_url",
    "require",
    "spy",
    "stub",
    "unload",
    "unmock_http",
    "unmock_module",
    "unmock_timers",
    "__version__",
]
