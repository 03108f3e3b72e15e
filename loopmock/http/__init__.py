"""HTTP interception and scripted responses."""

from loopmock.http.actions import (
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
from loopmock.http.interceptor import (
    HttpInterceptor,
    active_interceptor,
    install,
    mock_http,
    uninstall,
    unmock_http,
)
from loopmock.http.matchers import (
    AnyCondition,
    Condition,
    ExactCondition,
    Matcher,
    PatternCondition,
    PredicateCondition,
    make_condition,
)
from loopmock.http.pipeline import Continuation, Phase, RequestPipeline
from loopmock.http.proxy import MockClientRequest
from loopmock.http.routes import RequestRecord, RouteTable
from loopmock.http.transport import RouteTransport
from loopmock.http.urls import AnnotatedURL, build_url, parse_annotated_url

__all__ = [
    "Action",
    "AnnotatedURL",
    "AnyCondition",
    "Compute",
    "Condition",
    "Continuation",
    "Delay",
    "EmitEvent",
    "End",
    "ExactCondition",
    "ForwardToNetwork",
    "HttpInterceptor",
    "Matcher",
    "MockClientRequest",
    "PatternCondition",
    "Phase",
    "PredicateCondition",
    "RequestPipeline",
    "RequestRecord",
    "RouteTable",
    "RouteTransport",
    "Send",
    "ThrowInRequest",
    "Write",
    "WriteHead",
    "active_interceptor",
    "build_url",
    "install",
    "make_condition",
    "mock_http",
    "parse_annotated_url",
    "uninstall",
    "unmock_http",
]
