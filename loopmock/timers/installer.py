"""Swapping the runtime timer slots for a VirtualClock."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from loopmock.runtime import timers
from loopmock.timers.clock import VirtualClock

logger = logging.getLogger(__name__)

_installed: ClockInstaller | None = None


class ClockInstaller:
    """Owns the timer slots a clock replaced and puts them back.

    Only one installer is active at a time; installing another one first
    uninstalls the current one.
    """

    def __init__(self, clock: VirtualClock) -> None:
        self.clock = clock
        self.installed = False
        self._saved: dict[str, Callable[..., Any]] = {}

    def install(self) -> ClockInstaller:
        global _installed
        if self.installed:
            return self
        if _installed is not None and _installed is not self:
            _installed.uninstall()
        for name in timers.SLOT_NAMES:
            self._saved[name] = getattr(timers, name)
            setattr(timers, name, getattr(self.clock, name))
        self.installed = True
        _installed = self
        logger.debug("virtual clock installed at %dms", self.clock.now)
        return self

    def uninstall(self) -> ClockInstaller:
        global _installed
        if not self.installed:
            return self
        for name, original in self._saved.items():
            setattr(timers, name, original)
        self._saved.clear()
        self.installed = False
        if _installed is self:
            _installed = None
        logger.debug("virtual clock removed at %dms", self.clock.now)
        return self


def mock_timers() -> VirtualClock:
    """Install a fresh VirtualClock in place of the runtime timers."""
    return VirtualClock().install()


def unmock_timers() -> None:
    """Restore the runtime timers. Safe to call when not mocked."""
    if _installed is not None:
        _installed.uninstall()


def installed_clock() -> VirtualClock | None:
    return _installed.clock if _installed is not None else None
