"""Minimal event emitter shared by requests and responses."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any


class EventEmitter:
    """Synchronous publish/subscribe hub.

    Listeners run in registration order on the emitting call stack. A
    listener registered with once() is removed before it runs. Emitting
    "error" with nobody listening raises the error, so failures never
    disappear silently.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Callable[..., Any]]] = {}

    def on(self, event: str, listener: Callable[..., Any]) -> EventEmitter:
        self._listeners.setdefault(event, []).append(listener)
        self._listener_added(event)
        return self

    add_listener = on

    def once(self, event: str, listener: Callable[..., Any]) -> EventEmitter:
        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        wrapper.listener = listener  # type: ignore[attr-defined]
        return self.on(event, wrapper)

    def off(self, event: str, listener: Callable[..., Any]) -> EventEmitter:
        listeners = self._listeners.get(event, [])
        for i, registered in enumerate(listeners):
            if registered is listener or getattr(registered, "listener", None) is listener:
                del listeners[i]
                break
        return self

    remove_listener = off

    def remove_all_listeners(self, event: str | None = None) -> EventEmitter:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(event, None)
        return self

    def listeners(self, event: str) -> list[Callable[..., Any]]:
        return list(self._listeners.get(event, []))

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of ``event``; return whether there were any."""
        listeners = self.listeners(event)
        if not listeners:
            if event == "error" and args and isinstance(args[0], BaseException):
                raise args[0]
            return False
        for listener in listeners:
            listener(*args)
        return True

    def _listener_added(self, event: str) -> None:
        """Hook for subclasses that react to new subscriptions."""
