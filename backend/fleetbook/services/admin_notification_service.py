"""
Admin notification and live-update channel.

One channel per admin viewer. Booking events from the data service are put
on a queue and consumed by a single handler thread, which reloads the
canonical pending list (and the calendar, when the event falls in the
displayed month) instead of trusting the event payload. Duplicate deliveries
therefore never double count.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from fleetbook.config import settings
from fleetbook.models.booking import Booking
from fleetbook.schemas.booking import PendingBookingItem
from fleetbook.services.booking_events import (
    BookingCreated,
    BookingDeleted,
    BookingEvent,
    BookingStatusChanged,
    Subscription,
)
from fleetbook.services.calendar_service import CalendarView
from fleetbook.services.occupancy_service import CellKey, MonthRef
from fleetbook.utils.exceptions import AuthorizationError, NotFoundError
from fleetbook.utils.session_context import SessionContext

logger = logging.getLogger(__name__)

WATCHED_EVENTS = (BookingCreated, BookingStatusChanged, BookingDeleted)


@dataclass(frozen=True)
class ReloadRequested:
    """Queue message asking for a full reload (sent on mount)."""
    reason: str = "mount"


_STOP = object()


class PendingQueue:
    """Bookings awaiting an administrator decision, as last loaded from the data service."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: List[PendingBookingItem] = []
        self.version = 0

    def replace(self, bookings: List[Booking]) -> None:
        items = [PendingBookingItem.from_booking(b) for b in bookings]
        with self._lock:
            self._items = items
            self.version += 1

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def items(self) -> List[PendingBookingItem]:
        with self._lock:
            return list(self._items)

    def get(self, booking_id: str) -> Optional[PendingBookingItem]:
        with self._lock:
            for item in self._items:
                if item.id == str(booking_id):
                    return item
        return None


class AdminLiveChannel:
    def __init__(
        self,
        session: SessionContext,
        data_service,
        calendar_view: Optional[CalendarView] = None,
        highlight_seconds: Optional[float] = None,
        on_change: Optional[Callable[["AdminLiveChannel"], None]] = None,
    ):
        self.session = session
        self.data = data_service
        self.calendar_view = calendar_view
        self.highlight_seconds = highlight_seconds if highlight_seconds is not None else settings.highlight_seconds
        self.on_change = on_change
        self.pending = PendingQueue()

        self._lock = threading.Lock()
        self._generation = 0
        self._subscription: Optional[Subscription] = None
        self._queue: Optional[queue.Queue] = None
        self._worker: Optional[threading.Thread] = None
        self._highlight_timer: Optional[threading.Timer] = None

    @property
    def mounted(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    # ------------------------------------------------------------ lifecycle

    def mount(self) -> None:
        """Subscribe to booking events and start the handler. Admins only."""
        if not self.session.is_admin:
            raise AuthorizationError("Live booking notifications are only available to administrators")

        with self._lock:
            if self.mounted:
                return
            self._generation += 1
            generation = self._generation
            events: queue.Queue = queue.Queue()
            self._queue = events
            self._subscription = self.data.subscribe(WATCHED_EVENTS, events.put)
            self._worker = threading.Thread(
                target=self._run,
                args=(events, generation),
                name=f"admin-live-{self.session.user_id[:8]}",
                daemon=True,
            )
            self._worker.start()

        logger.info(f"Admin live channel mounted for {self.session.user_id}")
        events.put(ReloadRequested())

    def unmount(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel the subscription and stop the handler; late results are discarded."""
        with self._lock:
            subscription, worker, events = self._subscription, self._worker, self._queue
            self._subscription = None
            self._worker = None
            self._queue = None
            self._generation += 1
            timer, self._highlight_timer = self._highlight_timer, None

        if timer is not None:
            timer.cancel()
        if subscription is not None:
            subscription.cancel()
        if events is not None:
            events.put(_STOP)
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
        if subscription is not None:
            logger.info(f"Admin live channel unmounted for {self.session.user_id}")

    def on_session_changed(self, session: SessionContext) -> None:
        self.session = session
        if not session.is_admin and (self.mounted or self._worker is not None):
            logger.info(f"User {session.user_id} is no longer admin; closing live channel")
            self.unmount()

    def wait_idle(self) -> None:
        """Block until every queued message has been handled (tests and shutdown)."""
        events = self._queue
        if events is not None:
            events.join()

    # -------------------------------------------------------------- handler

    def _run(self, events: queue.Queue, generation: int) -> None:
        while True:
            message = events.get()
            try:
                if message is _STOP:
                    return
                self._handle(message, generation)
            except Exception as e:
                logger.error(f"Admin live channel failed to handle {type(message).__name__}: {e}", exc_info=True)
            finally:
                events.task_done()

    def _is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation and self._subscription is not None

    def _handle(self, message, generation: int) -> None:
        if not self._is_current(generation):
            return

        bookings = self.data.list_pending_bookings()
        if not self._is_current(generation):
            logger.debug("Discarding pending reload for a closed live channel")
            return
        self.pending.replace(bookings)

        view = self.calendar_view
        if view is not None and not view.dismissed:
            if isinstance(message, ReloadRequested) or (
                isinstance(message, BookingEvent) and view.month.contains(message.booking_date)
            ):
                view.refresh()

        if self.on_change is not None and self._is_current(generation):
            self.on_change(self)

    # ---------------------------------------------------------- jump to date

    def jump_to(self, booking_id: str) -> CellKey:
        """Show the booking's month and highlight its cell for ``highlight_seconds``."""
        if self.calendar_view is None:
            raise NotFoundError("Calendar view")

        booking = self.data.get_booking(booking_id)
        if booking is None:
            self.pending.replace(self.data.list_pending_bookings())
            raise NotFoundError("Booking", booking_id)

        view = self.calendar_view
        target = MonthRef.of(booking.booking_date)
        if view.month != target or view.index.month != target:
            view.go_to(target)

        cell: CellKey = (str(booking.car_id), booking.booking_date.day)
        view.set_highlight(cell)

        timer = threading.Timer(self.highlight_seconds, view.clear_highlight, args=(cell,))
        timer.daemon = True
        with self._lock:
            previous, self._highlight_timer = self._highlight_timer, timer
        if previous is not None:
            previous.cancel()
        timer.start()
        return cell
