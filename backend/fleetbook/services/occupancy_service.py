"""
Occupancy index for the monthly car calendar.

Maps (car_id, day of month) to the bookings that occupy that car on that day.
The index is always rebuilt from a full reload of the displayed month; it is
never patched in place.
"""

from __future__ import annotations

import calendar
import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from fleetbook.models.booking import OCCUPYING_STATUSES, Booking, BookingStatus
from fleetbook.models.car import Car

logger = logging.getLogger(__name__)

# Statuses the month query asks the data service to leave out.
EXCLUDED_STATUSES = tuple(s for s in BookingStatus if s not in OCCUPYING_STATUSES)

CellKey = Tuple[str, int]


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


@dataclass(frozen=True, order=True)
class MonthRef:
    """An immutable (year, month) pair; navigation returns new values."""

    year: int
    month: int

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")
        if not 1 <= self.year <= 9999:
            raise ValueError(f"year must be in 1..9999, got {self.year}")

    @classmethod
    def of(cls, value: date) -> "MonthRef":
        return cls(value.year, value.month)

    @classmethod
    def current(cls) -> "MonthRef":
        return cls.of(date.today())

    @property
    def days_in_month(self) -> int:
        return days_in_month(self.year, self.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, self.days_in_month)

    def days(self) -> range:
        return range(1, self.days_in_month + 1)

    def date_for(self, day: int) -> date:
        return date(self.year, self.month, day)

    def date_string(self, day: int) -> str:
        return f"{self.year:04d}-{self.month:02d}-{day:02d}"

    def contains(self, value: date) -> bool:
        return value.year == self.year and value.month == self.month

    def previous(self) -> "MonthRef":
        if self.month == 1:
            return MonthRef(self.year - 1, 12)
        return MonthRef(self.year, self.month - 1)

    def next(self) -> "MonthRef":
        if self.month == 12:
            return MonthRef(self.year + 1, 1)
        return MonthRef(self.year, self.month + 1)

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


def _creation_order(booking: Booking):
    return (booking.created_at, str(booking.id))


def build_occupancy_index(
    month: MonthRef,
    cars: Iterable[Car],
    bookings: Iterable[Booking],
) -> Dict[CellKey, List[Booking]]:
    """Group ``bookings`` into (car_id, day) cells for ``month``.

    Only bookings on the given cars, inside the month, and with an occupying
    status are kept. Each cell is sorted by creation time, oldest first.
    Overlapping bookings are all kept.
    """
    car_ids = {str(car.id) for car in cars}
    cells: Dict[CellKey, List[Booking]] = {}

    for booking in bookings:
        if str(booking.car_id) not in car_ids:
            continue
        if not month.contains(booking.booking_date):
            continue
        if BookingStatus(booking.status) not in OCCUPYING_STATUSES:
            continue
        cells.setdefault((str(booking.car_id), booking.booking_date.day), []).append(booking)

    for cell in cells.values():
        cell.sort(key=_creation_order)
    return cells


class OccupancyIndex:
    """Read model behind the calendar grid for one displayed month."""

    def __init__(self, month: Optional[MonthRef] = None, cars: Sequence[Car] = ()):
        self._lock = threading.Lock()
        self._month = month or MonthRef.current()
        self._cars: Tuple[Car, ...] = tuple(cars)
        self._cells: Dict[CellKey, List[Booking]] = {}
        self.version = 0

    @property
    def month(self) -> MonthRef:
        return self._month

    @property
    def cars(self) -> Tuple[Car, ...]:
        return self._cars

    @staticmethod
    def fetch(data_service, month: MonthRef, cars: Sequence[Car]) -> List[Booking]:
        """Query every occupying booking of ``month`` (first through last day, inclusive)."""
        return data_service.list_bookings(
            month.first_day,
            month.last_day,
            exclude_statuses=EXCLUDED_STATUSES,
            car_ids=[car.id for car in cars],
        )

    def reload(self, data_service, month: MonthRef, cars: Sequence[Car]) -> "OccupancyIndex":
        """Recompute the whole index for ``month`` from the data service."""
        bookings = self.fetch(data_service, month, cars)
        self.replace(month, cars, bookings)
        logger.debug(f"Occupancy index reloaded for {month}: {len(bookings)} booking(s), {len(cars)} car(s)")
        return self

    def replace(self, month: MonthRef, cars: Sequence[Car], bookings: Iterable[Booking]) -> None:
        cells = build_occupancy_index(month, cars, bookings)
        with self._lock:
            self._month = month
            self._cars = tuple(cars)
            self._cells = cells
            self.version += 1

    def cell(self, car_id: str, day: int) -> List[Booking]:
        with self._lock:
            return list(self._cells.get((str(car_id), day), ()))

    def find(self, booking_id: str) -> Optional[Tuple[CellKey, Booking]]:
        with self._lock:
            for key, bookings in self._cells.items():
                for booking in bookings:
                    if str(booking.id) == str(booking_id):
                        return key, booking
        return None

    def snapshot(self) -> Dict[CellKey, List[str]]:
        """Booking ids per cell; handy for comparing two reloads."""
        with self._lock:
            return {key: [str(b.id) for b in bookings] for key, bookings in self._cells.items()}

    def __len__(self) -> int:
        with self._lock:
            return sum(len(bookings) for bookings in self._cells.values())
