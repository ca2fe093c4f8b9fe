"""EventBus — delivers watcher notifications to observers.

Delivery is synchronous and in subscription order, on the thread that drains
the udev monitor. A handler that raises is logged with the device it was
handling and does not stop delivery to the remaining handlers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Optional

from devwatch.core.events import DEVICE_EVENTS, Event, EventType
from devwatch.log import format_device

logger = logging.getLogger(__name__)

Handler = Callable[[Event], None]


class EventBus:
    """Synchronous fan-out of :class:`Event` objects keyed by :class:`EventType`."""

    def __init__(self):
        self._handlers: dict[EventType, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *event_type*.

        Returns a callable that removes the subscription again.
        """
        if not isinstance(event_type, EventType):
            raise TypeError(f"event_type must be an EventType, got {event_type!r}")
        self._handlers[event_type].append(handler)
        return lambda: self.unsubscribe(event_type, handler)

    def subscribe_devices(
        self,
        on_added: Optional[Callable] = None,
        on_removed: Optional[Callable] = None,
    ) -> None:
        """Subscribe plain callbacks that receive the device description only."""
        if on_added is not None:
            self.subscribe(EventType.DEVICE_ADDED, lambda event: on_added(event.data))
        if on_removed is not None:
            self.subscribe(EventType.DEVICE_REMOVED, lambda event: on_removed(event.data))

    def unsubscribe(self, event_type: EventType, handler: Handler) -> None:
        """Remove a previously registered handler; unknown handlers are ignored."""
        handlers = self._handlers.get(event_type)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handler_count(self, event_type: EventType) -> int:
        return len(self._handlers.get(event_type, ()))

    def publish(self, event: Event) -> int:
        """Deliver *event* to its handlers and return how many completed.

        Handlers subscribed while the event is being delivered first see the
        next event.
        """
        delivered = 0
        for handler in list(self._handlers.get(event.type, ())):
            try:
                handler(event)
            except Exception:
                if event.type in DEVICE_EVENTS:
                    logger.exception("Handler failed on %s for %s", event.type.name, format_device(event.data))
                else:
                    logger.exception("Handler failed on %s", event.type.name)
            else:
                delivered += 1
        return delivered
