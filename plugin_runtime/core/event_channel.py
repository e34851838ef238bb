"""
Event Channel - synchronous fan-out publish/subscribe.

emit() calls every registered listener in registration order, on the caller's
execution context. There is no queuing and no async dispatch: a listener that
needs to await must schedule its own task.

Each plugin session owns two independent channels:
1. inbound: app -> plugin (written by the router, read by the dispatcher)
2. outbound: plugin -> app (written by the dispatcher and context, read by the router)
"""

import warnings
from collections.abc import Callable
from typing import Any

Listener = Callable[[Any], Any]


class EventChannelError(Exception):
    """Base exception for event channel errors."""

    pass


class EventChannel:
    """
    In-process publish/subscribe primitive.

    Listener failures are reported as RuntimeWarning and never stop delivery
    to the remaining listeners.
    """

    def __init__(self, name: str = "channel"):
        self.name = name
        self._listeners: list[Listener] = []

    def listen(self, listener: Listener) -> Listener:
        """
        Register a listener.

        Args:
            listener: Callable taking the emitted event

        Returns:
            The listener, so it can be passed to unlisten() later

        Raises:
            EventChannelError: If listener is not callable
        """
        if not callable(listener):
            raise EventChannelError(f"Listener must be callable, got {listener!r}")
        self._listeners.append(listener)
        return listener

    def unlisten(self, listener: Listener) -> bool:
        """
        Remove a listener.

        Returns:
            True if the listener was registered
        """
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def emit(self, event: Any) -> None:
        """
        Deliver an event to every listener registered at the time of the call.

        Iterates over a snapshot so listeners may unlisten themselves.
        """
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                warnings.warn(
                    f"Listener on '{self.name}' failed: {e}",
                    RuntimeWarning,
                    stacklevel=2,
                )

    def clear(self) -> None:
        """Remove all listeners."""
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
