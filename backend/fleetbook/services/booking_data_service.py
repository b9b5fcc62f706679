"""
Booking data service.

The persistence boundary for cars and bookings. Every call is a full round
trip on its own database session; mutations publish live-update events only
after the commit succeeded. Database failures surface as
TransientServiceError carrying the driver message.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Type

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from fleetbook.database import SessionLocal
from fleetbook.models.booking import Booking, BookingStatus
from fleetbook.models.car import Car
from fleetbook.models.profile import Profile
from fleetbook.services.booking_events import (
    BookingCreated,
    BookingDeleted,
    BookingEvent,
    BookingEventBus,
    BookingStatusChanged,
    Subscription,
)
from fleetbook.utils.exceptions import (
    InvalidTransitionError,
    NotFoundError,
    TransientServiceError,
    ValidationError,
)

logger = logging.getLogger(__name__)

BOOKING_FIELDS = (
    "car_id",
    "user_id",
    "created_by",
    "booking_date",
    "start_time",
    "end_time",
    "purpose",
    "destination",
    "driver_name",
    "notes",
    "guest_name",
)

CAR_MUTABLE_FIELDS = ("name", "plate_number", "capacity", "is_active")


class BookingDataService:
    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        event_bus: Optional[BookingEventBus] = None,
    ):
        self._session_factory = session_factory or SessionLocal
        self.events = event_bus or BookingEventBus()

    @contextmanager
    def _session(self, operation: str):
        db = self._session_factory()
        try:
            yield db
        except IntegrityError as exc:
            db.rollback()
            raise ValidationError(f"{operation} violates a data constraint", details={"reason": str(exc.orig)})
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(f"Data service {operation} failed: {exc}", exc_info=True)
            raise TransientServiceError(operation, str(exc)) from exc
        finally:
            db.close()

    # ----------------------------------------------------------------- profiles

    def get_profile(self, profile_id: str) -> Optional[Profile]:
        with self._session("get_profile") as db:
            return db.query(Profile).filter(Profile.id == str(profile_id)).first()

    def create_profile(self, email: str, full_name: str, role: str = "user", department: Optional[str] = None) -> Profile:
        with self._session("create_profile") as db:
            profile = Profile(email=email.strip().lower(), full_name=full_name.strip(), role=role, department=department)
            db.add(profile)
            db.commit()
            db.refresh(profile)
            return profile

    # --------------------------------------------------------------------- cars

    def list_cars(self, active: Optional[bool] = None) -> List[Car]:
        with self._session("list_cars") as db:
            query = db.query(Car)
            if active is not None:
                query = query.filter(Car.is_active.is_(active))
            return query.order_by(Car.name.asc(), Car.id.asc()).all()

    def get_car(self, car_id: str) -> Optional[Car]:
        with self._session("get_car") as db:
            return db.query(Car).filter(Car.id == str(car_id)).first()

    def create_car(
        self,
        name: str,
        plate_number: str,
        capacity: int = 4,
        is_active: bool = True,
        created_by: Optional[str] = None,
    ) -> Car:
        with self._session("create_car") as db:
            car = Car(
                name=name,
                plate_number=plate_number,
                capacity=capacity,
                is_active=is_active,
                created_by=created_by,
            )
            db.add(car)
            db.commit()
            db.refresh(car)
            logger.info(f"Car created: {car.name} ({car.plate_number})")
            return car

    def update_car(self, car_id: str, **fields: Any) -> Car:
        unknown = set(fields) - set(CAR_MUTABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown car fields: {sorted(unknown)}", details={"fields": sorted(unknown)})

        with self._session("update_car") as db:
            car = db.query(Car).filter(Car.id == str(car_id)).with_for_update().first()
            if not car:
                raise NotFoundError("Car", car_id)

            changed = {k: v for k, v in fields.items() if getattr(car, k) != v}
            if set(changed) - {"is_active"} and self._car_is_referenced(db, car.id):
                raise ValidationError(
                    "Car details cannot change once it has bookings; only the active flag can",
                    details={"car_id": car.id, "fields": sorted(set(changed) - {"is_active"})},
                )

            for key, value in changed.items():
                setattr(car, key, value)
            db.commit()
            db.refresh(car)
            return car

    def delete_car(self, car_id: str) -> None:
        with self._session("delete_car") as db:
            car = db.query(Car).filter(Car.id == str(car_id)).first()
            if not car:
                raise NotFoundError("Car", car_id)
            if self._car_is_referenced(db, car.id):
                raise ValidationError(
                    "Car has bookings; deactivate it instead of deleting",
                    field="car_id",
                    details={"car_id": car.id},
                )
            db.delete(car)
            db.commit()
            logger.info(f"Car deleted: {car_id}")

    @staticmethod
    def _car_is_referenced(db: Session, car_id: str) -> bool:
        return db.query(Booking.id).filter(Booking.car_id == car_id).first() is not None

    # ----------------------------------------------------------------- bookings

    def list_bookings(
        self,
        start_date: date,
        end_date: date,
        exclude_statuses: Iterable[BookingStatus] = (),
        car_ids: Optional[Iterable[str]] = None,
    ) -> List[Booking]:
        """Bookings with ``start_date <= booking_date <= end_date``, oldest first."""
        excluded = [BookingStatus(s).value for s in exclude_statuses]
        with self._session("list_bookings") as db:
            query = db.query(Booking).filter(
                Booking.booking_date >= start_date,
                Booking.booking_date <= end_date,
            )
            if excluded:
                query = query.filter(Booking.status.notin_(excluded))
            if car_ids is not None:
                query = query.filter(Booking.car_id.in_([str(c) for c in car_ids]))
            return query.order_by(Booking.created_at.asc(), Booking.id.asc()).all()

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._session("get_booking") as db:
            return db.query(Booking).filter(Booking.id == str(booking_id)).first()

    def list_pending_bookings(self) -> List[Booking]:
        with self._session("list_pending_bookings") as db:
            return (
                db.query(Booking)
                .filter(Booking.status == BookingStatus.PENDING.value)
                .order_by(Booking.created_at.asc(), Booking.id.asc())
                .all()
            )

    def count_pending_bookings(self) -> int:
        with self._session("count_pending_bookings") as db:
            return db.query(func.count(Booking.id)).filter(Booking.status == BookingStatus.PENDING.value).scalar() or 0

    def create_booking(self, fields: Dict[str, Any]) -> Booking:
        """Insert a booking in ``pending``; id and timestamps are assigned here."""
        unknown = set(fields) - set(BOOKING_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown booking fields: {sorted(unknown)}", details={"fields": sorted(unknown)})

        with self._session("create_booking") as db:
            car = db.query(Car).filter(Car.id == str(fields.get("car_id"))).first()
            if not car:
                raise NotFoundError("Car", fields.get("car_id"))
            for key in ("user_id", "created_by"):
                if not db.query(Profile.id).filter(Profile.id == str(fields.get(key))).first():
                    raise NotFoundError("Profile", fields.get(key))

            now = datetime.utcnow()
            booking = Booking(
                **fields,
                status=BookingStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            db.add(booking)
            db.commit()
            booking = db.query(Booking).filter(Booking.id == booking.id).one()

        logger.info(f"Booking {booking.id} created for car {booking.car_id} on {booking.booking_date}")
        self.events.publish(
            BookingCreated(
                booking_id=booking.id,
                car_id=booking.car_id,
                booking_date=booking.booking_date,
                status=booking.status,
            )
        )
        return booking

    def update_booking_status(
        self,
        booking_id: str,
        new_status: BookingStatus,
        expected_status: Optional[BookingStatus] = None,
    ) -> Booking:
        """Set the status and stamp ``updated_at``.

        When ``expected_status`` is given the update only applies if the row
        still has that status, so two admins acting on a stale view cannot
        both win.
        """
        new_status = BookingStatus(new_status)
        with self._session("update_booking_status") as db:
            booking = db.query(Booking).filter(Booking.id == str(booking_id)).with_for_update().first()
            if not booking:
                raise NotFoundError("Booking", booking_id)

            previous = booking.status
            if expected_status is not None and previous != BookingStatus(expected_status).value:
                raise InvalidTransitionError(
                    previous,
                    new_status.value,
                    reason=f"booking is no longer {BookingStatus(expected_status).value}",
                )

            booking.status = new_status.value
            booking.updated_at = max(datetime.utcnow(), booking.created_at)
            db.commit()
            db.refresh(booking)

        logger.info(f"Booking {booking.id} status {previous} -> {booking.status}")
        self.events.publish(
            BookingStatusChanged(
                booking_id=booking.id,
                car_id=booking.car_id,
                booking_date=booking.booking_date,
                status=booking.status,
                previous_status=previous,
            )
        )
        return booking

    def delete_booking(self, booking_id: str, expected_status: Optional[BookingStatus] = None) -> None:
        with self._session("delete_booking") as db:
            booking = db.query(Booking).filter(Booking.id == str(booking_id)).with_for_update().first()
            if not booking:
                raise NotFoundError("Booking", booking_id)
            if expected_status is not None and booking.status != BookingStatus(expected_status).value:
                raise InvalidTransitionError(
                    booking.status,
                    "deleted",
                    reason=f"booking is no longer {BookingStatus(expected_status).value}",
                )

            event = BookingDeleted(
                booking_id=booking.id,
                car_id=booking.car_id,
                booking_date=booking.booking_date,
                status=booking.status,
            )
            db.delete(booking)
            db.commit()

        logger.info(f"Booking {booking_id} deleted")
        self.events.publish(event)

    # ------------------------------------------------------------ live updates

    def subscribe(
        self,
        event_types: Iterable[Type[BookingEvent]],
        on_event: Callable[[BookingEvent], None],
    ) -> Subscription:
        return self.events.subscribe(event_types, on_event)
