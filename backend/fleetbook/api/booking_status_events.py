from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Tuple

from fleetbook.config import settings
from fleetbook.schemas.booking import BookingResponse, PendingBookingItem, PendingBookingsResponse
from fleetbook.services.background_tasks import TaskLane
from fleetbook.services.booking_data_service import BookingDataService
from fleetbook.services.booking_events import (
    BookingCreated,
    BookingDeleted,
    BookingEvent,
    BookingStatusChanged,
    Subscription,
)


logger = logging.getLogger(__name__)


class AdminRoomMembers:
    """Socket ids in the admin room, with the profile each one joined as."""

    def __init__(self):
        self._lock = threading.Lock()
        self._members: Dict[str, str] = {}

    def add(self, sid: str, user_id: str) -> None:
        with self._lock:
            self._members[sid] = user_id

    def discard(self, sid: str) -> None:
        with self._lock:
            self._members.pop(sid, None)

    def snapshot(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._members.items())

    def __contains__(self, sid: str) -> bool:
        with self._lock:
            return sid in self._members

    def prune(self, socketio, data_service: BookingDataService) -> List[str]:
        """Drop sockets whose profile is gone or no longer admin. Returns the removed sids."""
        removed = []
        for sid, user_id in self.snapshot():
            profile = data_service.get_profile(user_id)
            if profile is not None and profile.is_admin:
                continue
            self.discard(sid)
            try:
                socketio.server.leave_room(sid, settings.admin_room, namespace="/")
                socketio.emit("left", {"room": settings.admin_room, "reason": "Admin access revoked"}, to=sid)
            except Exception as exc:
                logger.error(f"Failed to remove {sid} from {settings.admin_room}: {exc}")
            removed.append(sid)
        if removed:
            logger.info(f"Removed {len(removed)} socket(s) without admin access from {settings.admin_room}")
        return removed


def pending_bookings_payload(data_service: BookingDataService) -> dict:
    bookings = data_service.list_pending_bookings()
    items = [PendingBookingItem.from_booking(b) for b in bookings]
    return PendingBookingsResponse(count=len(items), bookings=items).model_dump(mode="json")


def broadcast_pending_bookings_update_sync(socketio, data_service: BookingDataService) -> None:
    """Broadcast the current pending queue to the admin room."""
    payload = pending_bookings_payload(data_service)
    try:
        socketio.emit("pending_bookings_update", payload, to=settings.admin_room)
    except Exception as exc:
        logger.error(f"Failed to broadcast pending bookings: {exc}")


def broadcast_booking_created_sync(socketio, data_service: BookingDataService, booking_id: str) -> None:
    booking = data_service.get_booking(booking_id)
    if booking is None:
        logger.debug(f"Booking {booking_id} vanished before broadcast")
        return
    payload = BookingResponse.from_booking(booking).model_dump(mode="json")
    try:
        socketio.emit("booking_created", payload, to=settings.admin_room)
    except Exception as exc:
        logger.error(f"Failed to broadcast new booking {booking_id}: {exc}")


def broadcast_booking_event_sync(
    socketio,
    data_service: BookingDataService,
    event: BookingEvent,
    members: Optional[AdminRoomMembers] = None,
) -> None:
    if members is not None:
        members.prune(socketio, data_service)
    if isinstance(event, BookingCreated):
        broadcast_booking_created_sync(socketio, data_service, event.booking_id)
    broadcast_pending_bookings_update_sync(socketio, data_service)


def register_booking_broadcasts(
    socketio,
    data_service: BookingDataService,
    lane: TaskLane,
    members: Optional[AdminRoomMembers] = None,
) -> Subscription:
    """Forward booking changes to admin Socket.IO clients.

    Broadcasts run on ``lane`` so the mutating request does not wait for them.
    The pending queue is re-read from the database on every event, so clients
    always receive the canonical list.
    """

    def on_event(event: BookingEvent) -> None:
        lane.submit(
            broadcast_booking_event_sync,
            socketio,
            data_service,
            event,
            members,
            task_name=f"broadcast_{type(event).__name__}",
        )

    return data_service.subscribe((BookingCreated, BookingStatusChanged, BookingDeleted), on_event)
