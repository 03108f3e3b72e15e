"""Call-count and argument expectations on object methods.

Example:
    >>> registry = MockRegistry()
    >>> registry.expects(db, "query").times("twice").with_args("select 1").will_return([1])
    >>> db.query("select 1"), db.query("select 1")
    ([1], [1])
    >>> registry.verify()
    >>> registry.restore()
"""

from __future__ import annotations

import functools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loopmock.errors import InvalidArgumentError
from loopmock.recording.verification import VerificationError

ANY = -1
_NAMED_COUNTS = {"never": 0, "once": 1, "twice": 2, "thrice": 3, "any": ANY}


def parse_count(count: int | str | None) -> int:
    if count is None:
        return ANY
    if isinstance(count, str):
        if count not in _NAMED_COUNTS:
            raise InvalidArgumentError(f"unrecognized count {count!r}")
        return _NAMED_COUNTS[count]
    if isinstance(count, bool) or not isinstance(count, int):
        raise InvalidArgumentError(f"unrecognized count {count!r}")
    return count


@dataclass
class CallState:
    """What a behaviour sees: the mocked object and the call arguments."""

    target: Any
    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)


class Behaviour:
    """A computed result: ``fn(state)`` runs on each call instead of being returned."""

    def __init__(self, fn: Callable[[CallState], Any]) -> None:
        self.fn = fn

    def __call__(self, state: CallState) -> Any:
        return self.fn(state)


class ConsecutiveValues:
    """Values handed out one per call."""

    def __init__(self, values: list[Any]) -> None:
        self.values = list(values)

    def take(self) -> Any:
        return self.values.pop(0)

    @property
    def empty(self) -> bool:
        return not self.values


def return_value(value: Any) -> Behaviour:
    return Behaviour(lambda state: value)


def return_argument(index: int) -> Behaviour:
    return Behaviour(lambda state: state.args[index])


def return_self() -> Behaviour:
    return Behaviour(lambda state: state.target)


def raise_error(error: BaseException) -> Behaviour:
    def fn(state: CallState) -> Any:
        raise error

    return Behaviour(fn)


def call_callback(callback: Callable[..., Any], *args: Any) -> Behaviour:
    return Behaviour(lambda state: callback(*args))


def on_consecutive_calls(*values: Any) -> ConsecutiveValues:
    return ConsecutiveValues(list(values))


class Expectation:
    """Expected usage of one method.

    Calls are counted and, if ``with_args`` was used, checked against the
    expected argument lists in turn (the last list is reused for every
    later call). With scripted results (``will``/``will_return``/
    ``on_consecutive_calls``) they are handed out in order and None is
    returned once they run out; without any, the real method runs.
    """

    def __init__(self, target: Any, method: str, real: Callable[..., Any] | None) -> None:
        self.target = target
        self.method_name = method
        self.real = real
        self.expected_count = ANY
        self.call_count = 0
        self._with_args: list[tuple[Any, ...]] | None = None
        self._results: list[Any] | None = None

    def times(self, count: int | str | None) -> Expectation:
        self.expected_count = parse_count(count)
        self.call_count = 0
        return self

    def with_args(self, *args: Any) -> Expectation:
        if self._with_args is None:
            self._with_args = []
        self._with_args.append(args)
        return self

    def will_return(self, value: Any) -> Expectation:
        return self.will(return_value(value))

    def will(self, result: Any) -> Expectation:
        if self._results is None:
            self._results = []
        self._results.append(result)
        return self

    def on_consecutive_calls(self, *values: Any) -> Expectation:
        if self._results is None:
            self._results = []
        self._results.extend(values)
        return self

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.execute(args, kwargs)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return functools.partial(self._call_bound, instance)

    def _call_bound(self, instance: Any, *args: Any, **kwargs: Any) -> Any:
        return self.execute(args, kwargs, instance)

    def execute(self, args: tuple[Any, ...], kwargs: dict[str, Any], instance: Any = None) -> Any:
        self.call_count += 1
        if self._with_args is not None:
            expected = self._with_args[0]
            if tuple(args) != expected:
                raise VerificationError(
                    f"wrong arguments for {self.method_name}: expected {expected}, got {tuple(args)}",
                    expected=expected,
                    actual=tuple(args),
                )
            if len(self._with_args) > 1:
                self._with_args.pop(0)

        if self._results is not None:
            if not self._results:
                return None
            head = self._results[0]
            if isinstance(head, ConsecutiveValues):
                result = head.take()
                if head.empty:
                    self._results.pop(0)
            else:
                result = self._results.pop(0)
            state = CallState(instance if instance is not None else self.target, args, kwargs)
            return result(state) if isinstance(result, Behaviour) else result

        real = self.real
        if real is None:
            raise VerificationError(f"{self.method_name} has no real implementation to call")
        if instance is not None and hasattr(real, "__get__"):
            real = real.__get__(instance, type(instance))
        return real(*args, **kwargs)

    def check(self) -> None:
        """Raise VerificationError if the call count is off."""
        if self.expected_count >= 0 and self.call_count != self.expected_count:
            raise VerificationError(
                f"method {self.method_name} was called {self.call_count} times, "
                f"expected {self.expected_count}",
                expected=self.expected_count,
                actual=self.call_count,
            )


_MISSING = object()


class MockRegistry:
    """Owns the expectations of one test: install, verify, restore."""

    def __init__(self) -> None:
        self.expectations: list[Expectation] = []
        self._originals: dict[tuple[int, str], tuple[Any, str, Any, Any]] = {}

    def expects(self, target: Any, method: str, count: int | str | None = "any") -> Expectation:
        """Replace ``target.<method>`` with a new Expectation."""
        if not isinstance(method, str) or not method:
            raise InvalidArgumentError("method name required", target=repr(target))

        key = (id(target), method)
        if key not in self._originals:
            namespace = getattr(target, "__dict__", {})
            raw = namespace.get(method, _MISSING)
            self._originals[key] = (target, method, raw, getattr(target, method, None))
        real = self._originals[key][3]

        expectation = Expectation(target, method, real).times(count)
        self.expectations.append(expectation)
        setattr(target, method, expectation)
        return expectation

    def method(self, target: Any, method: str) -> Expectation:
        return self.expects(target, method, "any")

    def verify(self) -> None:
        """Check every expectation; the first failure is raised."""
        for expectation in self.expectations:
            expectation.check()

    def restore(self) -> None:
        """Put the real methods back and forget the expectations."""
        for target, method, raw, _ in self._originals.values():
            if raw is _MISSING:
                if method in getattr(target, "__dict__", {}):
                    delattr(target, method)
            else:
                setattr(target, method, raw)
        self._originals.clear()
        self.expectations.clear()

    def __enter__(self) -> MockRegistry:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        try:
            if exc_type is None:
                self.verify()
        finally:
            self.restore()
