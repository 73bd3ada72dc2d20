"""
Outbound event queue and dispatcher.

Services only append to the outbox. Delivery happens when the caller drains
it through ``EventDispatcher.dispatch_pending()``, after the operation has
returned. Handler errors are logged and never propagate: the operation that
produced the event has already committed.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable

from clinicbill.events import BillingEvent

logger = logging.getLogger(__name__)

Handler = Callable[[BillingEvent], None]


class EventOutbox:
    """FIFO of events waiting for delivery."""

    def __init__(self) -> None:
        self._pending: deque[BillingEvent] = deque()

    def append(self, event: BillingEvent) -> None:
        self._pending.append(event)
        logger.debug("Queued %s (event_id=%s)", event.event_type, event.event_id)

    def drain(self) -> list[BillingEvent]:
        """Remove and return every pending event, oldest first."""
        events = list(self._pending)
        self._pending.clear()
        return events

    def __len__(self) -> int:
        return len(self._pending)


class EventDispatcher:
    """
    Delivers outbox events to subscribers by event class name.

    Handlers run synchronously in subscription order.
    """

    def __init__(self, outbox: EventOutbox) -> None:
        self.outbox = outbox
        self._subscribers: dict[str, list[Handler]] = {}

    def subscribe(self, event_type: str, handler: Handler) -> None:
        """
        Subscribe to events of a specific type.

        Args:
            event_type: Name of the event class (e.g. 'InvoiceCreated'), or '*'
                for every event
            handler: Callable invoked with the event
        """
        self._subscribers.setdefault(event_type, []).append(handler)

    def deliver(self, event: BillingEvent) -> None:
        handlers = self._subscribers.get(event.event_type, []) + self._subscribers.get("*", [])
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Handler %s failed for %s (event_id=%s)",
                    getattr(handler, "__name__", repr(handler)),
                    event.event_type,
                    event.event_id,
                )

    def dispatch_pending(self) -> int:
        """Deliver everything in the outbox, including events queued by handlers.

        Returns the number of events delivered.
        """
        delivered = 0
        while self.outbox:
            for event in self.outbox.drain():
                self.deliver(event)
                delivered += 1
        if delivered:
            logger.debug("Dispatched %d event(s)", delivered)
        return delivered
