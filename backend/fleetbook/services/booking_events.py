"""
Booking live-update events.

The data service publishes these after a successful commit. Subscribers get
typed event objects; delivery is at-least-once, so handlers must re-derive
their state from the data service instead of trusting the payload.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, Iterable, Optional, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BookingEvent:
    booking_id: str
    car_id: str
    booking_date: date
    status: str
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class BookingCreated(BookingEvent):
    """A booking was inserted (always in ``pending``)."""


@dataclass(frozen=True)
class BookingStatusChanged(BookingEvent):
    previous_status: Optional[str] = None


@dataclass(frozen=True)
class BookingDeleted(BookingEvent):
    """A pending booking was removed by its owner."""


EventHandler = Callable[[BookingEvent], None]


class Subscription:
    """Handle returned by ``BookingEventBus.subscribe``; call ``cancel()`` to stop delivery."""

    def __init__(self, bus: "BookingEventBus", subscription_id: str, event_types: Tuple[Type[BookingEvent], ...]):
        self._bus = bus
        self.id = subscription_id
        self.event_types = event_types
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self.id)

    def __repr__(self):
        names = ",".join(t.__name__ for t in self.event_types)
        return f"<Subscription {self.id[:8]} [{names}] active={self._active}>"


class BookingEventBus:
    """
    In-process fan-out of booking events.

    Each subscriber receives every event whose type matches its filter.
    Errors in one handler are logged and don't stop the others.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[str, Tuple[Tuple[Type[BookingEvent], ...], EventHandler]] = {}

    def subscribe(
        self,
        event_types: Iterable[Type[BookingEvent]],
        on_event: EventHandler,
    ) -> Subscription:
        types = tuple(event_types) or (BookingEvent,)
        subscription_id = str(uuid.uuid4())
        with self._lock:
            self._handlers[subscription_id] = (types, on_event)
        logger.debug(f"Subscribed {subscription_id[:8]} to {[t.__name__ for t in types]}")
        return Subscription(self, subscription_id, types)

    def _remove(self, subscription_id: str) -> None:
        with self._lock:
            self._handlers.pop(subscription_id, None)
        logger.debug(f"Unsubscribed {subscription_id[:8]}")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._handlers)

    def publish(self, event: BookingEvent) -> None:
        with self._lock:
            targets = [
                handler for types, handler in self._handlers.values()
                if isinstance(event, types)
            ]

        logger.info(f"Publishing {type(event).__name__} for booking {event.booking_id} to {len(targets)} subscriber(s)")

        for handler in targets:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in booking event handler {getattr(handler, '__name__', handler)} "
                    f"for {type(event).__name__}: {e}",
                    exc_info=True
                )
