"""Configuration management for loopmock."""

from loopmock.config.settings import (
    MockSettings,
    configure,
    get_settings,
    load_settings,
    reset_settings,
)

__all__ = [
    "MockSettings",
    "configure",
    "get_settings",
    "load_settings",
    "reset_settings",
]
