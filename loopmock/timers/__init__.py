"""Virtual clock for the runtime timer slots."""

from loopmock.timers.clock import Task, VirtualClock
from loopmock.timers.installer import ClockInstaller, installed_clock, mock_timers, unmock_timers

__all__ = [
    "ClockInstaller",
    "Task",
    "VirtualClock",
    "installed_clock",
    "mock_timers",
    "unmock_timers",
]
