"""Pytest fixtures for loopmock.

Registered through the ``pytest11`` entry point when loopmock is installed.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from loopmock.http import RouteTable, mock_http, unmock_http
from loopmock.recording import MockRegistry
from loopmock.runtime import timers
from loopmock.timers import VirtualClock, mock_timers, unmock_timers


@pytest.fixture
def http_mock() -> Iterator[RouteTable]:
    """Intercepted HTTP with a fresh route table."""
    routes = mock_http()
    assert routes is not None
    try:
        yield routes
    finally:
        unmock_http()


@pytest.fixture
def virtual_clock() -> Iterator[VirtualClock]:
    """An installed virtual clock. Unrun next_tick callbacks are dropped at teardown."""
    clock = mock_timers()
    try:
        yield clock
    finally:
        unmock_timers()
        timers.discard_pending_ticks()


@pytest.fixture
def mock_registry() -> Iterator[MockRegistry]:
    """Expectations verified and restored at teardown."""
    registry = MockRegistry()
    try:
        yield registry
        registry.verify()
    finally:
        registry.restore()
