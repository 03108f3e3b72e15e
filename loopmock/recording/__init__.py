"""Spies, stubs, expectations and verification helpers."""

from loopmock.recording.expectations import (
    Behaviour,
    CallState,
    ConsecutiveValues,
    Expectation,
    MockRegistry,
    call_callback,
    on_consecutive_calls,
    raise_error,
    return_argument,
    return_self,
    return_value,
)
from loopmock.recording.spies import CallRecord, Spy, Stub, spy, stub
from loopmock.recording.verification import (
    InOrderVerifier,
    MockVerifier,
    VerificationError,
    in_order,
    verify_call_count,
    verify_called,
    verify_called_with,
    verify_not_called,
)

__all__ = [
    "Behaviour",
    "CallRecord",
    "CallState",
    "ConsecutiveValues",
    "Expectation",
    "InOrderVerifier",
    "MockRegistry",
    "MockVerifier",
    "Spy",
    "Stub",
    "VerificationError",
    "call_callback",
    "in_order",
    "on_consecutive_calls",
    "raise_error",
    "return_argument",
    "return_self",
    "return_value",
    "spy",
    "stub",
    "verify_call_count",
    "verify_called",
    "verify_called_with",
    "verify_not_called",
]
