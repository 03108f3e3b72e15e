"""Error types for loopmock."""

from loopmock.errors.base import (
    AbortedRequestError,
    ErrorCode,
    InvalidArgumentError,
    InvalidMatcherError,
    LoopMockError,
    ModuleMockError,
    NoRouteMatchedError,
    PipelinePhaseError,
    RealNetworkDisabledError,
    ScriptedThrowError,
)

__all__ = [
    "AbortedRequestError",
    "ErrorCode",
    "InvalidArgumentError",
    "InvalidMatcherError",
    "LoopMockError",
    "ModuleMockError",
    "NoRouteMatchedError",
    "PipelinePhaseError",
    "RealNetworkDisabledError",
    "ScriptedThrowError",
]
