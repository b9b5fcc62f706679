import enum
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, Time
from sqlalchemy.orm import relationship

from fleetbook.database import Base


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def display_name(self) -> str:
        return STATUS_PRESENTATION[self].label

    @property
    def color(self) -> str:
        return STATUS_PRESENTATION[self].color

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


@dataclass(frozen=True)
class StatusPresentation:
    color: str
    label: str


STATUS_PRESENTATION: dict[BookingStatus, StatusPresentation] = {
    BookingStatus.PENDING: StatusPresentation(color="yellow", label="Pending Approval"),
    BookingStatus.APPROVED: StatusPresentation(color="green", label="Approved"),
    BookingStatus.REJECTED: StatusPresentation(color="red", label="Rejected"),
    BookingStatus.COMPLETED: StatusPresentation(color="blue", label="Completed"),
    BookingStatus.CANCELLED: StatusPresentation(color="gray", label="Cancelled"),
}

_missing_presentation = set(BookingStatus) - set(STATUS_PRESENTATION)
if _missing_presentation:
    raise RuntimeError(
        f"Booking statuses without presentation: {sorted(s.value for s in _missing_presentation)}"
    )
if len({p.color for p in STATUS_PRESENTATION.values()}) != len(STATUS_PRESENTATION):
    raise RuntimeError("Every booking status needs its own color")

TERMINAL_STATUSES = frozenset({BookingStatus.REJECTED, BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# Statuses that occupy a car on the calendar.
OCCUPYING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.APPROVED, BookingStatus.COMPLETED})


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    car_id = Column(String(36), ForeignKey("cars.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)  # requester
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=False)  # who entered it

    booking_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    purpose = Column(String(255), nullable=False)
    destination = Column(String(255), nullable=False)
    driver_name = Column(String(255), nullable=True)
    guest_name = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    car = relationship("Car", lazy="joined", innerjoin=True)
    requester = relationship("Profile", foreign_keys=[user_id], lazy="joined", innerjoin=True)
    creator = relationship("Profile", foreign_keys=[created_by], lazy="joined", innerjoin=True)

    def __repr__(self):
        return f"<Booking {self.id} {self.booking_date} {self.status}>"

    @property
    def requester_name(self):
        return self.requester.full_name if self.requester is not None else None

    @property
    def creator_name(self):
        return self.creator.full_name if self.creator is not None else None
