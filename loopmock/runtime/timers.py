"""Process-wide scheduling primitives.

Code that wants to run something "soon", "later" or "every N ms" calls the
slot functions of this module through the module object::

    from loopmock.runtime import timers

    handle = timers.set_timeout(retry, 250)
    timers.clear_timeout(handle)

The default implementations schedule on the running asyncio event loop.
A VirtualClock swaps the slots for its own deterministic versions while it
is installed, which is why callers must look the functions up on the module
at call time instead of importing them by name.

Delays and periods are in milliseconds.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

SLOT_NAMES = (
    "set_immediate",
    "clear_immediate",
    "set_timeout",
    "clear_timeout",
    "set_interval",
    "clear_interval",
)


class IntervalHandle:
    """Handle for a repeating loop callback that re-arms itself."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        callback: Callable[..., Any],
        period_ms: float,
        args: tuple[Any, ...],
    ) -> None:
        self._loop = loop
        self._callback = callback
        self._period = period_ms / 1000
        self._args = args
        self._cancelled = False
        self._handle: asyncio.TimerHandle = loop.call_later(self._period, self._fire)

    def _fire(self) -> None:
        if self._cancelled:
            return
        try:
            self._callback(*self._args)
        finally:
            if not self._cancelled:
                self._handle = self._loop.call_later(self._period, self._fire)

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()

    def cancelled(self) -> bool:
        return self._cancelled


def _normalize_delay(ms: float | None) -> float:
    if not ms or ms < 0:
        return 1
    return ms


def _real_set_immediate(callback: Callable[..., Any], *args: Any) -> asyncio.Handle:
    return asyncio.get_running_loop().call_soon(callback, *args)


def _real_set_timeout(
    callback: Callable[..., Any], delay_ms: float | None = 0, *args: Any
) -> asyncio.TimerHandle:
    delay = _normalize_delay(delay_ms)
    return asyncio.get_running_loop().call_later(delay / 1000, callback, *args)


def _real_set_interval(
    callback: Callable[..., Any], period_ms: float | None = 0, *args: Any
) -> IntervalHandle:
    return IntervalHandle(asyncio.get_running_loop(), callback, _normalize_delay(period_ms), args)


def _real_clear(handle: Any) -> None:
    if handle is not None:
        handle.cancel()


set_immediate = _real_set_immediate
clear_immediate = _real_clear
set_timeout = _real_set_timeout
clear_timeout = _real_clear
set_interval = _real_set_interval
clear_interval = _real_clear

SYSTEM_TIMERS: dict[str, Callable[..., Any]] = {
    "set_immediate": _real_set_immediate,
    "clear_immediate": _real_clear,
    "set_timeout": _real_set_timeout,
    "clear_timeout": _real_clear,
    "set_interval": _real_set_interval,
    "clear_interval": _real_clear,
}


_PENDING_TICKS: list[tuple[Callable[..., Any], tuple[Any, ...]]] = []


def next_tick(callback: Callable[..., Any], *args: Any) -> None:
    """Run ``callback`` once the code that is running now has returned.

    Never virtualised. On a running loop this is the loop's next
    iteration. Without one the callback is queued for run_pending_ticks();
    an installed VirtualClock drains that queue after every task it runs
    and at the start of each advance().
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        _PENDING_TICKS.append((callback, args))
    else:
        loop.call_soon(callback, *args)


def run_pending_ticks() -> int:
    """Run queued next_tick callbacks in order, including ones they queue.

    An exception propagates; the callbacks after it stay queued.
    """
    count = 0
    while _PENDING_TICKS:
        callback, args = _PENDING_TICKS.pop(0)
        count += 1
        callback(*args)
    return count


def discard_pending_ticks() -> None:
    _PENDING_TICKS.clear()
