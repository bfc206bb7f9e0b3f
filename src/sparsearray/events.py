"""Change notification for cache state transitions.

Handlers run synchronously, in subscription order, on the thread that caused
the transition. Payloads per event:

- LENGTH_RESOLVED: (length,)
- RANGE_REQUESTED: (range,)
- SLOT_UPDATED: (index, slot)
- SLOT_INVALIDATED: (index, slot)
- EXPIRED: (marker,)
- CLEARED: ()
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any

Handler = Callable[..., Any]


class CacheEvent(str, Enum):
    LENGTH_RESOLVED = "length_resolved"
    RANGE_REQUESTED = "range_requested"
    SLOT_UPDATED = "slot_updated"
    SLOT_INVALIDATED = "slot_invalidated"
    EXPIRED = "expired"
    CLEARED = "cleared"


class EventEmitter:
    """Minimal synchronous publish/subscribe hook."""

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: dict[CacheEvent, list[Handler]] = {}

    def on(self, event: CacheEvent | str, handler: Handler) -> Callable[[], None]:
        """Subscribe to an event. Returns a callable that unsubscribes."""
        key = CacheEvent(event)
        self._handlers.setdefault(key, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def emit(self, event: CacheEvent, *args: Any) -> None:
        # Copy so handlers may unsubscribe while being notified
        for handler in list(self._handlers.get(event, ())):
            handler(*args)
