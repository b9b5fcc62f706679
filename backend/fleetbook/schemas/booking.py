from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from fleetbook.models.booking import STATUS_PRESENTATION, Booking, BookingStatus


def _strip_optional(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    normalized = v.strip()
    return normalized or None


class BookingCreateRequest(BaseModel):
    car_id: str
    booking_date: date
    start_time: time = time(8, 0)
    end_time: time = time(17, 0)
    purpose: str
    destination: str
    driver_name: Optional[str] = None
    notes: Optional[str] = None
    guest_name: Optional[str] = None
    # Requester; defaults to the signed-in user. Admins may book on behalf of someone else.
    user_id: Optional[str] = None

    @field_validator("car_id")
    @classmethod
    def validate_car_id(cls, v: str) -> str:
        v_norm = (v or "").strip()
        if not v_norm:
            raise ValueError("car_id is required")
        return v_norm

    @field_validator("purpose", "destination")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        normalized = (v or "").strip()
        if not normalized:
            raise ValueError("must not be empty")
        return normalized

    @field_validator("driver_name", "notes", "guest_name", "user_id")
    @classmethod
    def validate_optional_text(cls, v: Optional[str]) -> Optional[str]:
        return _strip_optional(v)

    @model_validator(mode="after")
    def validate_time_window(self) -> "BookingCreateRequest":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingResponse(BaseModel):
    id: str
    car_id: str
    car_name: Optional[str] = None
    car_plate_number: Optional[str] = None
    user_id: str
    requester_name: Optional[str] = None
    created_by: str
    creator_name: Optional[str] = None
    booking_date: date
    start_time: time
    end_time: time
    purpose: str
    destination: str
    driver_name: Optional[str] = None
    notes: Optional[str] = None
    guest_name: Optional[str] = None
    status: BookingStatus
    status_label: str
    status_color: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        status = BookingStatus(booking.status)
        presentation = STATUS_PRESENTATION[status]
        car = booking.car
        return cls(
            id=booking.id,
            car_id=booking.car_id,
            car_name=car.name if car is not None else None,
            car_plate_number=car.plate_number if car is not None else None,
            user_id=booking.user_id,
            requester_name=booking.requester_name,
            created_by=booking.created_by,
            creator_name=booking.creator_name,
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            purpose=booking.purpose,
            destination=booking.destination,
            driver_name=booking.driver_name,
            notes=booking.notes,
            guest_name=booking.guest_name,
            status=status,
            status_label=presentation.label,
            status_color=presentation.color,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class PendingBookingItem(BaseModel):
    id: str
    car_id: str
    car_name: Optional[str] = None
    booking_date: date
    requester_name: Optional[str] = None
    destination: str

    @classmethod
    def from_booking(cls, booking: Booking) -> "PendingBookingItem":
        return cls(
            id=booking.id,
            car_id=booking.car_id,
            car_name=booking.car.name if booking.car is not None else None,
            booking_date=booking.booking_date,
            requester_name=booking.requester_name,
            destination=booking.destination,
        )


class PendingBookingsResponse(BaseModel):
    count: int
    bookings: List[PendingBookingItem] = Field(default_factory=list)
