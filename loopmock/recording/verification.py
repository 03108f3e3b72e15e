"""Mock verification.

Assertions over what spies, stubs and route tables recorded:
- Assert a mock was called (or not)
- Assert call counts
- Assert call arguments
- Assert the order of calls across several spies

Example:
    >>> from loopmock.recording import verify_called, verify_call_count
    >>>
    >>> verify_called(fetch)
    >>> verify_call_count(fetch, times=2)
    >>> verify_called(routes, "GET:/api/users")
    >>> in_order().add(connect).add(fetch).verify()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Union

from loopmock.recording.spies import CallRecord, Spy

if TYPE_CHECKING:
    from loopmock.http.routes import RouteTable

Verifiable = Union[Spy, "RouteTable"]


class VerificationError(AssertionError):
    """Raised when mock verification fails."""

    def __init__(
        self,
        message: str,
        expected: Any = None,
        actual: Any = None,
        calls: list[Any] | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        self.calls = calls or []
        super().__init__(message)


class MockVerifier:
    """Fluent verifier for a spy, or for one route of a route table.

    Example:
        >>> MockVerifier(fetch).was_called(times=2).with_args("/users/1")
        >>> MockVerifier(routes).route("POST:/api/users").was_called()
    """

    def __init__(self, mock: Verifiable) -> None:
        self._mock = mock
        self._route: str | None = None

    def route(self, condition: str) -> MockVerifier:
        """Select the route (by its declared condition) to verify."""
        self._route = condition
        return self

    @property
    def _label(self) -> str:
        if isinstance(self._mock, Spy):
            return self._mock.name
        if self._route is None:
            raise VerificationError("No route specified for verification")
        return self._route

    def _count(self) -> int:
        if isinstance(self._mock, Spy):
            return self._mock.call_count
        return self._mock.call_count(self._label)

    def _calls(self) -> list[Any]:
        if isinstance(self._mock, Spy):
            return self._mock.calls.copy()
        return self._mock.get_calls(self._label)

    def was_called(self, times: int | None = None) -> MockVerifier:
        """Verify the mock was called (exactly ``times`` times if given).

        Raises:
            VerificationError: If verification fails
        """
        count = self._count()
        if times is not None:
            if count != times:
                raise VerificationError(
                    f"Expected {self._label} to be called {times} times, "
                    f"but was called {count} times",
                    expected=times,
                    actual=count,
                    calls=self._calls(),
                )
        elif count == 0:
            raise VerificationError(f"Expected {self._label} to be called, but was not called")
        return self

    def was_not_called(self) -> MockVerifier:
        count = self._count()
        if count > 0:
            raise VerificationError(
                f"Expected {self._label} to not be called, but was called {count} times",
                expected=0,
                actual=count,
                calls=self._calls(),
            )
        return self

    def at_least(self, times: int) -> MockVerifier:
        count = self._count()
        if count < times:
            raise VerificationError(
                f"Expected {self._label} to be called at least {times} times, "
                f"but was called {count} times",
                expected=f">= {times}",
                actual=count,
            )
        return self

    def at_most(self, times: int) -> MockVerifier:
        count = self._count()
        if count > times:
            raise VerificationError(
                f"Expected {self._label} to be called at most {times} times, "
                f"but was called {count} times",
                expected=f"<= {times}",
                actual=count,
            )
        return self

    def with_args(self, *args: Any, **kwargs: Any) -> MockVerifier:
        """Verify some recorded call had exactly these arguments (spies only)."""
        if not isinstance(self._mock, Spy):
            raise VerificationError("with_args only works with spies and stubs")
        calls = self._calls()
        if not calls:
            raise VerificationError(
                f"Expected {self._label} to be called with {args} {kwargs}, but was not called"
            )
        for call in calls:
            if call.args == args and call.kwargs == kwargs:
                return self

        last = calls[-1]
        raise VerificationError(
            f"Expected {self._label} to be called with {args} {kwargs}, "
            f"but last call had: {last.args} {last.kwargs}",
            expected=(args, kwargs),
            actual=(last.args, last.kwargs),
            calls=calls,
        )

    def with_header(self, key: str, value: str) -> MockVerifier:
        """Verify the last request to the route carried a header (route tables only)."""
        if isinstance(self._mock, Spy):
            raise VerificationError("with_header only works with route verification")
        calls = self._calls()
        if not calls:
            raise VerificationError(
                f"Expected {self._label} to be called with header {key}: {value}, "
                "but was not called"
            )
        headers = {k.lower(): v for k, v in calls[-1].headers.items()}
        actual_value = headers.get(key.lower())
        if actual_value != value:
            raise VerificationError(
                f"Expected header {key}: {value}, but got: {actual_value}",
                expected={key: value},
                actual=headers,
            )
        return self


def _verifier(mock: Verifiable, route: str | None) -> MockVerifier:
    verifier = MockVerifier(mock)
    if route is not None:
        verifier.route(route)
    return verifier


def verify_called(mock: Verifiable, route: str | None = None) -> None:
    """Verify a spy (or a route of a route table) was called.

    Raises:
        VerificationError: If it was not called
    """
    _verifier(mock, route).was_called()


def verify_not_called(mock: Verifiable, route: str | None = None) -> None:
    _verifier(mock, route).was_not_called()


def verify_call_count(
    mock: Verifiable,
    route: str | None = None,
    *,
    times: int | None = None,
    at_least: int | None = None,
    at_most: int | None = None,
) -> None:
    """Verify call counts.

    Args:
        mock: Spy or route table to verify
        route: Route condition (for route tables)
        times: Exact expected count
        at_least: Minimum expected count
        at_most: Maximum expected count

    Raises:
        VerificationError: If count doesn't match
    """
    verifier = _verifier(mock, route)
    if times is not None:
        verifier.was_called(times=times)
    if at_least is not None:
        verifier.at_least(at_least)
    if at_most is not None:
        verifier.at_most(at_most)


def verify_called_with(mock: Spy, *args: Any, **kwargs: Any) -> None:
    MockVerifier(mock).with_args(*args, **kwargs)


class InOrderVerifier:
    """Verify spies were called in a specific order.

    Example:
        >>> verifier = InOrderVerifier()
        >>> verifier.add(connect)
        >>> verifier.add(fetch)
        >>> verifier.verify()  # Passes if connect was called before fetch
    """

    def __init__(self) -> None:
        self._expected: list[Spy] = []

    def add(self, mock: Spy) -> InOrderVerifier:
        self._expected.append(mock)
        return self

    def verify(self) -> None:
        """Verify calls happened in expected order.

        Raises:
            VerificationError: If order doesn't match
        """
        all_calls: list[tuple[CallRecord, Spy]] = []
        for mock in {id(m): m for m in self._expected}.values():
            all_calls.extend((call, mock) for call in mock.calls)
        all_calls.sort(key=lambda item: item[0].sequence)

        expected_index = 0
        for _, mock in all_calls:
            if expected_index >= len(self._expected):
                break
            if mock is self._expected[expected_index]:
                expected_index += 1

        if expected_index < len(self._expected):
            remaining = [m.name for m in self._expected[expected_index:]]
            raise VerificationError(f"Expected calls not found in order: {remaining}")


def in_order() -> InOrderVerifier:
    """Create an in-order verifier.

    Example:
        >>> in_order().add(spy1).add(spy2).verify()
    """
    return InOrderVerifier()
