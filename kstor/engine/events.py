"""
EventEmitter - synchronous named-event dispatch.
"""

import logging
from collections.abc import Callable
from typing import Any

Listener = Callable[..., Any]


class EventEmitter:
    """
    Minimal publish/subscribe hub.

    Listeners run synchronously on the emitting thread, in registration
    order. An exception raised by a listener propagates to the emitter's
    caller, after being logged.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        """
        Register `listener` for `event`.

        Returns the listener so this can be used as a decorator.
        """
        self._listeners.setdefault(event, []).append(listener)
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register `listener` to be called at most once."""

        def wrapper(*args: Any) -> Any:
            self.off(event, wrapper)
            return listener(*args)

        wrapper.listener = listener  # type: ignore[attr-defined]
        self.on(event, wrapper)
        return listener

    def off(self, event: str, listener: Listener | None = None) -> None:
        """Remove `listener` from `event`, or every listener if None."""
        if listener is None:
            self._listeners.pop(event, None)
            return

        registered = self._listeners.get(event, [])
        for candidate in registered:
            if candidate is listener or getattr(candidate, "listener", None) is listener:
                registered.remove(candidate)
                break
        if not registered:
            self._listeners.pop(event, None)

    def remove_all_listeners(self) -> None:
        self._listeners.clear()

    def has_listener(self, event: str) -> bool:
        return bool(self._listeners.get(event))

    def listeners(self, event: str) -> list[Listener]:
        return list(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """
        Call every listener registered for `event` with `args`.

        Returns:
            True if at least one listener was called.
        """
        listeners = self.listeners(event)
        for listener in listeners:
            try:
                listener(*args)
            except Exception:
                logging.exception(f"Listener for event {event!r} failed")
                raise
        return bool(listeners)
