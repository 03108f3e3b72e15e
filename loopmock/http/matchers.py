"""Route conditions and matchers.

A condition is decided once, when the route is declared, and becomes one of
four kinds:

- ExactCondition: a string compared for equality against the request path,
  the full URL, or either of those prefixed with ``METHOD:``
- PatternCondition: a compiled regex searched in the full URL and in
  ``METHOD:`` + full URL
- PredicateCondition: any callable taking ``(request, response)``
- AnyCondition: the catch-all installed by ``default()``
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Pattern, Union

from loopmock.errors import InvalidMatcherError
from loopmock.http.urls import build_url

if TYPE_CHECKING:
    from loopmock.http.actions import Action
    from loopmock.runtime.client import ClientRequest, IncomingResponse


def _request_forms(request: ClientRequest) -> tuple[str, str, str]:
    pathname = request.options.pathname
    url = build_url(request.options, pathname)
    return pathname, url, f"{request.method}:"


@dataclass(frozen=True)
class ExactCondition:
    target: str

    def accepts(self, request: ClientRequest, response: IncomingResponse) -> bool:
        pathname, url, method = _request_forms(request)
        return self.target in (pathname, url, method + pathname, method + url)

    def describe(self) -> str:
        return self.target


@dataclass(frozen=True)
class PatternCondition:
    pattern: Pattern[str]

    def accepts(self, request: ClientRequest, response: IncomingResponse) -> bool:
        _, url, method = _request_forms(request)
        return bool(self.pattern.search(url) or self.pattern.search(method + url))

    def describe(self) -> str:
        return f"/{self.pattern.pattern}/"


@dataclass(frozen=True)
class PredicateCondition:
    predicate: Callable[[Any, Any], Any]

    def accepts(self, request: ClientRequest, response: IncomingResponse) -> bool:
        return bool(self.predicate(request, response))

    def describe(self) -> str:
        return getattr(self.predicate, "__name__", repr(self.predicate))


@dataclass(frozen=True)
class AnyCondition:
    def accepts(self, request: ClientRequest, response: IncomingResponse) -> bool:
        return True

    def describe(self) -> str:
        return "*"


Condition = Union[ExactCondition, PatternCondition, PredicateCondition, AnyCondition]
CONDITION_TYPES = (ExactCondition, PatternCondition, PredicateCondition, AnyCondition)


def make_condition(condition: Any) -> Condition:
    """Classify a route condition.

    Raises:
        InvalidMatcherError: If ``condition`` is not a string, compiled
            pattern or callable.
    """
    if isinstance(condition, CONDITION_TYPES):
        return condition
    if isinstance(condition, str):
        return ExactCondition(condition)
    if isinstance(condition, re.Pattern):
        return PatternCondition(condition)
    if callable(condition):
        return PredicateCondition(condition)
    raise InvalidMatcherError(condition=repr(condition), condition_type=type(condition).__name__)


@dataclass
class Matcher:
    """A condition plus the actions to run when it accepts a request.

    ``uses_remaining`` is None for routes that never run out. Exhausted
    matchers stay in the table and are skipped.
    """

    condition: Condition
    actions: list[Action] = field(default_factory=list)
    uses_remaining: int | None = None
    call_count: int = 0

    @property
    def exhausted(self) -> bool:
        return self.uses_remaining is not None and self.uses_remaining <= 0

    @property
    def description(self) -> str:
        return self.condition.describe()

    def accepts(self, request: ClientRequest, response: IncomingResponse) -> bool:
        if self.exhausted:
            return False
        return self.condition.accepts(request, response)

    def claim(self) -> None:
        """Count one dispatch against this matcher."""
        self.call_count += 1
        if self.uses_remaining is not None:
            self.uses_remaining -= 1
