"""Deterministic, manually advanced clock.

Time only moves when advance() is called. Each simulated millisecond first
drains the immediates that were queued when the millisecond began, then
fires the timeouts due at exactly that millisecond.

Example:
    >>> clock = VirtualClock()
    >>> fired = []
    >>> clock.set_timeout(fired.append, 2, "a")
    >>> clock.set_immediate(fired.append, "b")
    >>> clock.advance(2)
    >>> fired
    ['b', 'a']
"""

from __future__ import annotations

import asyncio
import functools
import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loopmock.runtime import timers

if TYPE_CHECKING:
    from loopmock.timers.installer import ClockInstaller

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Task:
    """A scheduled callback. ``period`` is set for repeating tasks."""

    callback: Callable[..., Any]
    args: tuple[Any, ...] = ()
    due_at: int = 0
    period: int | None = None
    cancelled: bool = False
    fire_count: int = 0

    @property
    def repeating(self) -> bool:
        return self.period is not None

    def cancel(self) -> None:
        self.cancelled = True


def _normalize_delay(ms: Any) -> int:
    if isinstance(ms, bool) or not isinstance(ms, (int, float)) or not ms > 0:
        return 1
    return math.ceil(ms)


def _cancel(task: Any) -> None:
    if isinstance(task, Task):
        task.cancel()


class VirtualClock:
    """Replacement for the six timer slots of ``loopmock.runtime.timers``.

    Attributes:
        now: Simulated milliseconds since the clock was created.
        immediates: Tasks waiting for the next drain.
        timeouts: Tasks keyed by the millisecond they are due.
    """

    def __init__(self) -> None:
        self.now = 0
        self.immediates: list[Task] = []
        self.timeouts: dict[int, list[Task]] = {}
        self._recoveries: list[Callable[[], None]] = []
        self._installer: ClockInstaller | None = None

    # Timer slots

    def set_immediate(self, callback: Callable[..., Any], *args: Any) -> Task:
        task = Task(callback, args, due_at=self.now)
        self.immediates.append(task)
        return task

    def clear_immediate(self, task: Any) -> None:
        _cancel(task)

    def set_timeout(self, callback: Callable[..., Any], delay_ms: Any = 0, *args: Any) -> Task:
        task = Task(callback, args, due_at=self.now + _normalize_delay(delay_ms))
        self._schedule(task)
        return task

    def clear_timeout(self, task: Any) -> None:
        _cancel(task)

    def set_interval(self, callback: Callable[..., Any], period_ms: Any = 0, *args: Any) -> Task:
        period = _normalize_delay(period_ms)
        task = Task(callback, args, due_at=self.now + period, period=period)
        self._schedule(task)
        return task

    def clear_interval(self, task: Any) -> None:
        _cancel(task)

    def _schedule(self, task: Task) -> None:
        self.timeouts.setdefault(task.due_at, []).append(task)

    # Driver

    def advance(self, ms: Any = None) -> VirtualClock:
        """Run simulated time forward by ``ms`` milliseconds (default 1).

        ``advance(0)`` only drains the immediates queued right now. If a
        callback raises, the exception propagates out of advance() and the
        rest of its batch is resumed on the next loop iteration, or at the
        start of the next advance() when no loop is running. Callbacks
        queued with ``next_tick`` outside a loop run after the task that
        queued them, or first thing in the next advance().
        """
        timers.run_pending_ticks()
        self._run_recoveries()

        if isinstance(ms, bool) or not isinstance(ms, (int, float)) or not ms >= 0:
            ms = 1
        if ms == 0:
            self._process_immediates()
            return self

        for _ in range(math.ceil(ms)):
            self.now += 1
            self._process_immediates()
            self._process_timeouts(self.now)
        return self

    tick = advance

    def _process_immediates(self) -> None:
        if not self.immediates:
            return
        batch, self.immediates = self.immediates, []
        for i, task in enumerate(batch):
            try:
                self._run(task)
            except Exception as err:
                self.immediates = batch[i + 1:] + self.immediates
                self._recover(self._process_immediates, err)
                raise

    def _process_timeouts(self, timestamp: int) -> None:
        batch = self.timeouts.pop(timestamp, None)
        if not batch:
            return
        for i, task in enumerate(batch):
            try:
                self._run(task)
            except Exception as err:
                self.timeouts[timestamp] = batch[i + 1:] + self.timeouts.get(timestamp, [])
                self._recover(functools.partial(self._process_timeouts, timestamp), err)
                raise

    def _run(self, task: Task) -> None:
        if task.cancelled:
            return
        task.fire_count += 1
        try:
            task.callback(*task.args)
            timers.run_pending_ticks()
        finally:
            if task.period is not None and not task.cancelled:
                task.due_at = self.now + task.period
                self._schedule(task)

    def _recover(self, resume: Callable[[], None], error: Exception) -> None:
        logger.warning("timer callback raised %s at %dms: %s", type(error).__name__, self.now, error)
        self._recoveries.append(resume)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        loop.call_soon(self._run_recoveries)

    def _run_recoveries(self) -> None:
        while self._recoveries:
            self._recoveries.pop(0)()

    # Introspection

    @property
    def pending_tasks(self) -> int:
        """Number of tasks that will still fire."""
        count = sum(1 for task in self.immediates if not task.cancelled)
        for tasks in self.timeouts.values():
            count += sum(1 for task in tasks if not task.cancelled)
        return count

    @property
    def next_due(self) -> int | None:
        """Timestamp of the earliest live timeout, if any."""
        due = [ts for ts, tasks in self.timeouts.items() if any(not t.cancelled for t in tasks)]
        return min(due) if due else None

    # Installation

    @property
    def installed(self) -> bool:
        return self._installer is not None and self._installer.installed

    def install(self) -> VirtualClock:
        from loopmock.timers.installer import ClockInstaller

        if self._installer is None:
            self._installer = ClockInstaller(self)
        self._installer.install()
        return self

    def uninstall(self) -> VirtualClock:
        if self._installer is not None:
            self._installer.uninstall()
        return self

    def __enter__(self) -> VirtualClock:
        return self.install()

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.uninstall()
