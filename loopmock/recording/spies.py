"""Spies and stubs.

A Spy wraps an inner callable behind an explicit ``invoke`` method and
records every call. A Stub is a Spy that has been put in place of an
attribute on some object and knows how to put the original back.

Example:
    >>> fetch = stub(client, "fetch").returns({"id": 1})
    >>> client.fetch("/users/1")
    {'id': 1}
    >>> fetch.call_count
    1
    >>> fetch.restore()
"""

from __future__ import annotations

import itertools
import types
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loopmock.config import get_settings
from loopmock.errors import InvalidArgumentError

_sequence = itertools.count(1)


def next_sequence() -> int:
    """Process-wide call ordinal, used to verify ordering across spies."""
    return next(_sequence)


@dataclass
class CallRecord:
    """One recorded call.

    Attributes:
        args: Positional arguments
        kwargs: Keyword arguments
        returned: Return value (None if the call raised)
        error: The exception raised, if any
        callbacks: Argument tuples passed to callbacks by ``yields``
        sequence: Process-wide call ordinal
        timestamp: When the call was made
    """

    args: tuple[Any, ...]
    kwargs: dict[str, Any] = field(default_factory=dict)
    returned: Any = None
    error: BaseException | None = None
    callbacks: list[tuple[Any, ...]] = field(default_factory=list)
    sequence: int = 0
    timestamp: datetime = field(default_factory=datetime.now)


Behaviour = Callable[[tuple, dict, CallRecord], Any]


def _returns(value: Any) -> Behaviour:
    return lambda args, kwargs, record: value


def _raises(error: BaseException) -> Behaviour:
    def behaviour(args: tuple, kwargs: dict, record: CallRecord) -> Any:
        raise error

    return behaviour


def _yields(values: tuple[Any, ...]) -> Behaviour:
    def behaviour(args: tuple, kwargs: dict, record: CallRecord) -> Any:
        callback = next((arg for arg in reversed(args) if callable(arg)), None)
        if callback is None:
            callback = next((arg for arg in reversed(list(kwargs.values())) if callable(arg)), None)
        if callback is None:
            raise InvalidArgumentError("yields() needs a callable argument to call back")
        record.callbacks.append(values)
        return callback(*values)

    return behaviour


class Spy:
    """Records calls made through ``invoke`` (or by calling the spy).

    Without scripted behaviour the inner callable runs and its result is
    returned; a spy with no inner callable returns None. One-shot
    behaviours queued with ``*_once`` take precedence, in order, before the
    persistent one.
    """

    def __init__(
        self,
        inner: Callable[..., Any] | None = None,
        save_limit: int | None = None,
        name: str | None = None,
    ) -> None:
        self.inner = inner
        self.name = name or getattr(inner, "__name__", "spy")
        self.save_limit = get_settings().record_limit if save_limit is None else save_limit
        self.call_count = 0
        self.calls: list[CallRecord] = []
        self.last_args: tuple[Any, ...] | None = None
        self.last_kwargs: dict[str, Any] | None = None
        self.last_return: Any = None
        self.last_error: BaseException | None = None
        self._behaviour: Behaviour | None = None
        self._once: deque[Behaviour] = deque()

    def invoke(self, *args: Any, **kwargs: Any) -> Any:
        self.call_count += 1
        record = CallRecord(args, kwargs, sequence=next_sequence())
        if len(self.calls) < self.save_limit:
            self.calls.append(record)
        self.last_args = args
        self.last_kwargs = kwargs

        behaviour = self._once.popleft() if self._once else self._behaviour
        try:
            if behaviour is not None:
                result = behaviour(args, kwargs, record)
            elif self.inner is not None:
                result = self.inner(*args, **kwargs)
            else:
                result = None
        except Exception as err:
            record.error = err
            self.last_error = err
            self.last_return = None
            raise

        record.returned = result
        self.last_return = result
        self.last_error = None
        return result

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.invoke(*args, **kwargs)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        # behave like a function when stored on a class
        if instance is None:
            return self
        return types.MethodType(self, instance)

    # Scripted behaviour

    def returns(self, value: Any) -> Spy:
        self._behaviour = _returns(value)
        return self

    def raises(self, error: BaseException) -> Spy:
        self._behaviour = _raises(error)
        return self

    def yields(self, *values: Any) -> Spy:
        """Call the last callable argument with ``values``."""
        self._behaviour = _yields(values)
        return self

    def returns_once(self, value: Any) -> Spy:
        self._once.append(_returns(value))
        return self

    def raises_once(self, error: BaseException) -> Spy:
        self._once.append(_raises(error))
        return self

    def yields_once(self, *values: Any) -> Spy:
        self._once.append(_yields(values))
        return self

    def passthrough(self) -> Spy:
        """Drop scripted behaviour so the inner callable runs again."""
        self._behaviour = None
        self._once.clear()
        return self

    # Inspection

    @property
    def called(self) -> bool:
        return self.call_count > 0

    @property
    def called_once(self) -> bool:
        return self.call_count == 1

    def called_with(self, *args: Any, **kwargs: Any) -> bool:
        """Whether any recorded call had exactly these arguments."""
        return any(call.args == args and call.kwargs == kwargs for call in self.calls)

    def get_call(self, index: int) -> CallRecord:
        return self.calls[index]

    def reset(self) -> None:
        self.call_count = 0
        self.calls.clear()
        self.last_args = None
        self.last_kwargs = None
        self.last_return = None
        self.last_error = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} calls={self.call_count}>"


_MISSING = object()


class Stub(Spy):
    """A Spy installed as ``target.<attribute>``; restore() undoes it."""

    def __init__(
        self,
        target: Any,
        attribute: str,
        inner: Callable[..., Any] | None = None,
        save_limit: int | None = None,
    ) -> None:
        super().__init__(inner, save_limit=save_limit, name=attribute)
        self.target = target
        self.attribute = attribute
        namespace = getattr(target, "__dict__", {})
        self._original = namespace.get(attribute, _MISSING)
        self.restored = False
        setattr(target, attribute, self)

    def restore(self) -> None:
        if self.restored:
            return
        if self._original is _MISSING:
            if self.attribute in getattr(self.target, "__dict__", {}):
                delattr(self.target, self.attribute)
        else:
            setattr(self.target, self.attribute, self._original)
        self.restored = True

    def __enter__(self) -> Stub:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.restore()


def stub(
    target: Any,
    attribute: str,
    replacement: Callable[..., Any] | None = None,
    save_limit: int | None = None,
) -> Stub:
    """Replace ``target.<attribute>`` with a recording stub.

    The stub runs ``replacement`` if given, otherwise it returns None until
    scripted with returns()/raises()/yields().
    """
    if not isinstance(attribute, str) or not attribute:
        raise InvalidArgumentError("attribute name required", target=repr(target))
    return Stub(target, attribute, replacement, save_limit=save_limit)


def spy(target: Any, attribute: str | None = None, save_limit: int | None = None) -> Spy:
    """Record calls while passing through to the real callable.

    ``spy(fn)`` wraps a callable; ``spy(obj, "name")`` swaps the attribute
    in place and returns the Stub so it can be restored.
    """
    if attribute is None:
        if not callable(target):
            raise InvalidArgumentError("spy() needs a callable or an attribute name")
        return Spy(target, save_limit=save_limit)
    original = getattr(target, attribute)
    return Stub(target, attribute, original, save_limit=save_limit)
