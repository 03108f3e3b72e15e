"""Logging helpers for loopmock."""

from loopmock.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

__all__ = [
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
    "reset_logging",
]
