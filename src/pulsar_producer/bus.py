"""Simple publish/subscribe bus for observing pulsar-publish records.

A session emits every decoded record under its ``msg`` value, ``error`` when
pulsar-publish reports a failure, and ``end`` once the call resolves. The bus
is passive: nothing a handler does changes the outcome of the call.

Record events carry the whole ``ProtocolRecord``. Its ``fields`` property is
the payload with ``msg``, ``time`` and ``level`` stripped; ``time`` is also
available parsed as a datetime.
"""

import logging
from typing import Any, Callable, Dict, List, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Handler = Callable[[Any], None]


@runtime_checkable
class Observer(Protocol):
    def emit(self, event: str, payload: Any = None) -> None:
        """Receive one event."""
        ...


class EventBus:
    """Event bus supporting subscription, unsubscription, and emitting.

    Handlers are invoked with a single argument: the emitted payload.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Handler]] = {}

    def on(self, event: str, handler: Handler) -> Handler:
        """
        Register a handler for an event name.

        Args:
            event: Record kind, 'error' or 'end'
            handler: Callable invoked with the payload

        Returns:
            The registered handler
        """
        self._subscribers.setdefault(event, []).append(handler)
        return handler

    subscribe = on

    def off(self, event: str, handler: Handler) -> None:
        """Remove a previously registered handler."""
        # Bound methods compare equal but are new objects on every access.
        handlers = self._subscribers.get(event, [])
        for i, h in enumerate(handlers):
            if h == handler:
                del handlers[i]
                break
        if not handlers:
            self._subscribers.pop(event, None)

    unsubscribe = off

    def listeners(self, event: str) -> List[Handler]:
        return list(self._subscribers.get(event, []))

    def emit(self, event: str, payload: Any = None) -> None:
        """Invoke every handler subscribed to the event."""
        for handler in self.listeners(event):
            try:
                handler(payload)
            except Exception:
                logger.exception(f"Observer handler for '{event}' failed")
