"""Exception hierarchy for loopmock.

Every error raised or emitted by loopmock inherits from LoopMockError and
carries:
- error_code: an ErrorCode enum for programmatic handling
- context: a dict of request or declaration details
- suggestions: actionable steps for fixing the test setup

Request-lifecycle errors (no route, aborted request, scripted failures) are
never raised at the call site; they are emitted on the request's "error"
event. Declaration errors (bad matcher condition, bad arguments) are raised
synchronously.

Example:
    req = http.request("http://api.local/users")
    req.on("error", lambda err: print(err.error_code.value, err.message))
    req.end()
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Error codes for loopmock.

    Codes are organized by category:
    - E1xx: Request lifecycle errors (emitted on the request)
    - E2xx: Declaration errors (raised where the mock is declared)
    - E3xx: Module mocking errors
    - E9xx: Unknown/internal errors
    """

    # Request lifecycle errors (E1xx)
    NO_ROUTE_MATCHED = "E101"
    PIPELINE_FAILED = "E102"
    SCRIPTED_THROW = "E103"
    REQUEST_ABORTED = "E104"
    REAL_NETWORK_DISABLED = "E105"

    # Declaration errors (E2xx)
    INVALID_MATCHER = "E201"
    INVALID_ARGUMENT = "E202"

    # Module mocking errors (E3xx)
    MODULE_MOCK_FAILED = "E301"

    # Unknown/internal errors (E9xx)
    UNKNOWN = "E999"

    @property
    def category(self) -> str:
        """Get the error category name."""
        code_num = int(self.value[1:])
        if code_num < 200:
            return "request"
        elif code_num < 300:
            return "declaration"
        elif code_num < 400:
            return "module"
        else:
            return "unknown"


class LoopMockError(Exception):
    """Base exception for all loopmock errors.

    Attributes:
        error_code: Unique ErrorCode for this error type
        message: Human-readable error description
        context: Request or declaration details
        cause: The underlying exception (if any)
    """

    error_code: ErrorCode = ErrorCode.UNKNOWN
    default_message: str = "An unexpected mocking error occurred"
    default_suggestions: list[str] = []

    def __init__(
        self,
        message: str | None = None,
        error_code: ErrorCode | None = None,
        cause: BaseException | None = None,
        suggestions: list[str] | None = None,
        **context: Any,
    ) -> None:
        self.message = message or self.default_message
        self.error_code = error_code or self.error_code
        self.cause = cause
        self.context: dict[str, Any] = dict(context)
        self._suggestions = suggestions
        super().__init__(self.message)

    @property
    def suggestions(self) -> list[str]:
        """Get actionable suggestions for resolving this error."""
        if self._suggestions is not None:
            return self._suggestions
        return self.default_suggestions.copy()

    def format_verbose(self) -> str:
        """Format error with its context and suggestions."""
        lines = [f"Error [{self.error_code.value}]: {self.message}"]

        for key, value in self.context.items():
            lines.append(f"  {key}: {value}")

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for suggestion in self.suggestions:
                lines.append(f"  - {suggestion}")

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for serialization."""
        return {
            "error_code": self.error_code.value,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "suggestions": self.suggestions,
            "context": {k: str(v) for k, v in self.context.items()},
            "cause": str(self.cause) if self.cause else None,
        }


class NoRouteMatchedError(LoopMockError):
    """No declared route accepted the request.

    Emitted on the request's error channel, never raised, and never
    silently turned into a real network call.
    """

    error_code = ErrorCode.NO_ROUTE_MATCHED
    default_message = "no route for request"
    default_suggestions = [
        "Declare a route with .when(url) before issuing the request",
        "Compare the attempted URL with the declared condition string",
        "Add a catch-all with .default() as the last route",
    ]

    def __init__(self, url: str, method: str | None = None, **kwargs: Any) -> None:
        self.url = url
        self.method = method
        super().__init__(message=f"no route for {url}", url=url, method=method, **kwargs)


class PipelinePhaseError(LoopMockError):
    """An action aborted the response pipeline with a non-exception value.

    Exceptions passed to next() or raised by an action travel unchanged;
    this class only wraps plain values such as next("boom").
    """

    error_code = ErrorCode.PIPELINE_FAILED
    default_message = "response pipeline failed"

    def __init__(self, message: str | None = None, phase: str | None = None, **kwargs: Any) -> None:
        self.phase = phase
        super().__init__(message=message, phase=phase, **kwargs)


class ScriptedThrowError(LoopMockError):
    """Error injected by a .throw() action that was given a plain value."""

    error_code = ErrorCode.SCRIPTED_THROW
    default_message = "scripted request error"


class AbortedRequestError(LoopMockError):
    """The request was cancelled with abort() or socket.destroy()."""

    error_code = ErrorCode.REQUEST_ABORTED
    default_message = "socket hang up"
    code = "ECONNRESET"


class RealNetworkDisabledError(LoopMockError):
    """A .make_request() action ran while real network access is disabled."""

    error_code = ErrorCode.REAL_NETWORK_DISABLED
    default_message = "real network access is disabled"
    default_suggestions = [
        "Set LOOPMOCK_ALLOW_REAL_NETWORK=true to let make_request() reach the network",
        "Replace .make_request() with a scripted .send() for this route",
    ]


class InvalidMatcherError(LoopMockError):
    """A route condition was not a string, compiled pattern or callable."""

    error_code = ErrorCode.INVALID_MATCHER
    default_message = "when-condition not recognized"
    default_suggestions = [
        "Pass a URL or path string, e.g. .when('GET:/api/users')",
        "Pass a compiled pattern, e.g. .when(re.compile(r'/users/\\d+'))",
        "Pass a callable taking (request, response) and returning bool",
    ]


class InvalidArgumentError(LoopMockError):
    """A mock was declared with arguments of the wrong type."""

    error_code = ErrorCode.INVALID_ARGUMENT
    default_message = "invalid argument"


class ModuleMockError(LoopMockError):
    """Module mocking was misused (e.g. an empty module name)."""

    error_code = ErrorCode.MODULE_MOCK_FAILED
    default_message = "module mocking failed"
