"""Event emission for keystore observability.

Listeners subscribe by event name and receive the event's payload model
(or nothing, for ready/close). Both plain functions and coroutine functions
are accepted; coroutines are awaited in registration order.
"""

import inspect
from collections import defaultdict
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from keystore.models.events import EventType

logger = structlog.get_logger(__name__)

Listener = Callable[..., Union[None, Awaitable[None]]]


class EventEmitter:
    """
    Minimal async-aware event emitter.

    Example:
        >>> emitter = EventEmitter()
        >>> seen = []
        >>> emitter.on("set", seen.append)
        >>> await emitter.emit("set", payload)
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)

    def on(self, event: Union[EventType, str], listener: Listener) -> Listener:
        """Register listener for event and return it (for a later off())."""
        self._listeners[_name(event)].append(listener)
        return listener

    def off(self, event: Union[EventType, str], listener: Listener) -> bool:
        """Remove a listener. Returns False if it was not registered."""
        listeners = self._listeners.get(_name(event), [])
        try:
            listeners.remove(listener)
        except ValueError:
            return False
        return True

    def listener_count(self, event: Union[EventType, str]) -> int:
        return len(self._listeners.get(_name(event), []))

    async def emit(self, event: Union[EventType, str], payload: Optional[Any] = None) -> int:
        """
        Call every listener of event.

        A failing listener is logged and skipped; it never interrupts the
        keystore operation that emitted the event.

        Returns:
            Number of listeners called successfully
        """
        name = _name(event)
        delivered = 0

        # Copy so listeners may unsubscribe themselves while being called
        for listener in list(self._listeners.get(name, [])):
            try:
                result = listener() if payload is None else listener(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(
                    "event_listener_error",
                    event_name=name,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error=str(e),
                    error_type=type(e).__name__,
                )

        return delivered


def _name(event: Union[EventType, str]) -> str:
    return event.value if isinstance(event, EventType) else str(event)
