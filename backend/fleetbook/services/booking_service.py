from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from fleetbook.models.booking import Booking, BookingStatus
from fleetbook.schemas.booking import BookingCreateRequest
from fleetbook.services import booking_state_machine
from fleetbook.services.booking_data_service import BookingDataService
from fleetbook.utils.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
    validation_error_from_pydantic,
)
from fleetbook.utils.idempotency import InFlightGuard, create_key, delete_key, transition_key
from fleetbook.utils.session_context import SessionContext

logger = logging.getLogger(__name__)


class RefreshSignal:
    """Invalidate signal fired after every successful mutation so dependent views re-query."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: List[Callable[[str], None]] = []

    def connect(self, listener: Callable[[str], None]) -> None:
        with self._lock:
            self._listeners.append(listener)

    def disconnect(self, listener: Callable[[str], None]) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, reason: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(reason)
            except Exception as e:
                logger.error(f"Refresh listener failed for {reason}: {e}", exc_info=True)


class BookingService:
    def __init__(
        self,
        data_service: BookingDataService,
        session: SessionContext,
        guard: Optional[InFlightGuard] = None,
        refresh_signal: Optional[RefreshSignal] = None,
    ):
        self.data = data_service
        self.session = session
        self.guard = guard or InFlightGuard()
        self.refresh_signal = refresh_signal or RefreshSignal()

    def _parse_create_request(self, payload: Union[BookingCreateRequest, Dict[str, Any]]) -> BookingCreateRequest:
        if isinstance(payload, BookingCreateRequest):
            return payload
        try:
            return BookingCreateRequest.model_validate(payload)
        except PydanticValidationError as exc:
            raise validation_error_from_pydantic(exc, "Invalid booking request")

    def _load_booking(self, booking_id: str) -> Booking:
        booking = self.data.get_booking(booking_id)
        if not booking:
            # The list the user acted on is stale.
            self.refresh_signal.emit("booking_missing")
            raise NotFoundError("Booking", booking_id)
        return booking

    def create_booking(self, payload: Union[BookingCreateRequest, Dict[str, Any]]) -> Booking:
        """Validate and submit a new booking request; it always starts as ``pending``."""
        req = self._parse_create_request(payload)

        requester_id = req.user_id or self.session.user_id
        if requester_id != self.session.user_id and not self.session.is_admin:
            raise AuthorizationError("Only administrators can book on behalf of another user")

        with self.guard.hold(create_key(self.session.user_id)):
            car = self.data.get_car(req.car_id)
            if not car:
                self.refresh_signal.emit("car_missing")
                raise NotFoundError("Car", req.car_id)
            if not car.is_active:
                raise ValidationError(
                    f"Car {car.name} is not available for new bookings",
                    field="car_id",
                    details={"car_id": car.id, "is_active": False},
                )

            fields = req.model_dump(exclude={"user_id"})
            fields["user_id"] = requester_id
            fields["created_by"] = self.session.user_id
            booking = self.data.create_booking(fields)

        self.refresh_signal.emit("booking_created")
        return booking

    def _resolve(self, booking: Union[str, Booking]) -> Booking:
        # A Booking the caller already holds is trusted for the local checks;
        # the data service re-checks the status when it applies the change.
        if isinstance(booking, Booking):
            return booking
        return self._load_booking(booking)

    def transition(self, booking: Union[str, Booking], target: Union[str, BookingStatus]) -> Booking:
        booking_id = booking.id if isinstance(booking, Booking) else str(booking)
        with self.guard.hold(transition_key(booking_id)):
            current_booking = self._resolve(booking)
            current = BookingStatus(current_booking.status)
            target_status = booking_state_machine.validate_transition(current, target, self.session)
            try:
                updated = self.data.update_booking_status(booking_id, target_status, expected_status=current)
            except NotFoundError:
                self.refresh_signal.emit("booking_missing")
                raise

        logger.info(
            f"Booking {booking_id} {current.value} -> {target_status.value} by {self.session.user_id}"
        )
        self.refresh_signal.emit("booking_status_changed")
        return updated

    def approve(self, booking: Union[str, Booking]) -> Booking:
        return self.transition(booking, BookingStatus.APPROVED)

    def reject(self, booking: Union[str, Booking]) -> Booking:
        return self.transition(booking, BookingStatus.REJECTED)

    def complete(self, booking: Union[str, Booking]) -> Booking:
        return self.transition(booking, BookingStatus.COMPLETED)

    def delete_booking(self, booking: Union[str, Booking]) -> None:
        booking_id = booking.id if isinstance(booking, Booking) else str(booking)
        with self.guard.hold(delete_key(booking_id)):
            current_booking = self._resolve(booking)
            booking_state_machine.validate_deletion(current_booking.status, current_booking.user_id, self.session)
            try:
                self.data.delete_booking(booking_id, expected_status=BookingStatus.PENDING)
            except NotFoundError:
                self.refresh_signal.emit("booking_missing")
                raise

        logger.info(f"Booking {booking_id} deleted by owner {self.session.user_id}")
        self.refresh_signal.emit("booking_deleted")
