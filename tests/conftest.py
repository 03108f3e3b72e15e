"""Pytest fixtures for loopmock tests."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import pytest

from loopmock.config import reset_settings
from loopmock.http import unmock_http
from loopmock.modules import unmock_module
from loopmock.pytest_plugin import http_mock, mock_registry, virtual_clock  # noqa: F401
from loopmock.runtime import http as runtime_http
from loopmock.runtime import timers
from loopmock.runtime.client import IncomingResponse
from loopmock.timers import unmock_timers


@pytest.fixture(autouse=True)
def clean_state() -> Iterator[None]:
    """Leave no mock installed between tests."""
    reset_settings()
    yield
    unmock_http()
    unmock_timers()
    unmock_module()
    timers.discard_pending_ticks()
    reset_settings()


@dataclass
class Exchange:
    """A request issued through the runtime factory plus what came back."""

    request: Any
    responses: list[IncomingResponse] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)
    ended: list[IncomingResponse] = field(default_factory=list)
    done: list[IncomingResponse] = field(default_factory=list)

    @property
    def response(self) -> IncomingResponse:
        assert len(self.responses) == 1, f"expected one response, got {len(self.responses)}"
        return self.responses[0]


@pytest.fixture
def issue() -> Any:
    """Issue a request and collect its response, errors and completion."""

    def _issue(target: Any, body: Any = None, end: bool = True, **options: Any) -> Exchange:
        exchange: Exchange

        def on_response(res: IncomingResponse) -> None:
            exchange.responses.append(res)
            res.on("end", lambda: exchange.ended.append(res))

        req = runtime_http.request(target, on_response, **options)
        exchange = Exchange(req)
        req.on("error", exchange.errors.append)
        req.on("mock_response_done", exchange.done.append)
        if body is not None:
            req.write(body)
        if end:
            req.end()
        return exchange

    return _issue
