"""
Monthly car x day calendar.

``project_grid`` is a pure projection of an OccupancyIndex into the grid
payload. ``CalendarView`` holds the displayed month and the selected cars,
reloads the index on navigation and routes cell clicks to the shell's
callbacks.
"""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence

from fleetbook.models.booking import OCCUPYING_STATUSES, STATUS_PRESENTATION, Booking, BookingStatus
from fleetbook.models.car import Car
from fleetbook.schemas.calendar import (
    CalendarCell,
    CalendarDay,
    CalendarEntry,
    CalendarGridResponse,
    CalendarRow,
    CreateAffordance,
    StatusLegendItem,
)
from fleetbook.services.occupancy_service import CellKey, MonthRef, OccupancyIndex
from fleetbook.utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

CreateBookingCallback = Callable[[str, str], None]
ViewBookingCallback = Callable[[Booking], None]


def _hhmm(value) -> str:
    return value.strftime("%H:%M")


def _entry(booking: Booking) -> CalendarEntry:
    status = BookingStatus(booking.status)
    presentation = STATUS_PRESENTATION[status]
    return CalendarEntry(
        booking_id=str(booking.id),
        status=status,
        status_label=presentation.label,
        status_color=presentation.color,
        purpose=booking.purpose,
        destination=booking.destination,
        start_time=_hhmm(booking.start_time),
        end_time=_hhmm(booking.end_time),
        requester_name=booking.requester_name,
        creator_name=booking.creator_name,
    )


def status_legend() -> List[StatusLegendItem]:
    return [
        StatusLegendItem(status=status, label=STATUS_PRESENTATION[status].label, color=STATUS_PRESENTATION[status].color)
        for status in BookingStatus
        if status in OCCUPYING_STATUSES
    ]


def project_grid(
    month: MonthRef,
    cars: Iterable[Car],
    index: OccupancyIndex,
    today: Optional[date] = None,
    highlighted: Optional[CellKey] = None,
) -> CalendarGridResponse:
    """Build the grid for ``month``: one row per car (by name), one column per day."""
    today = today or date.today()
    ordered_cars = sorted(cars, key=lambda c: (c.name, str(c.id)))

    days = [
        CalendarDay(
            day=day,
            date=month.date_string(day),
            is_today=(today.year, today.month, today.day) == (month.year, month.month, day),
        )
        for day in month.days()
    ]

    rows: List[CalendarRow] = []
    for car in ordered_cars:
        cells: List[CalendarCell] = []
        for day in month.days():
            bookings = index.cell(car.id, day) if index.month == month else []
            date_string = month.date_string(day)
            cells.append(
                CalendarCell(
                    day=day,
                    date=date_string,
                    entries=[_entry(b) for b in bookings],
                    create=None if bookings else CreateAffordance(car_id=str(car.id), date=date_string),
                    highlighted=highlighted == (str(car.id), day),
                )
            )
        rows.append(CalendarRow(car_id=str(car.id), car_name=car.name, plate_number=car.plate_number, cells=cells))

    return CalendarGridResponse(
        year=month.year,
        month=month.month,
        days_in_month=month.days_in_month,
        days=days,
        rows=rows,
        legend=status_legend(),
    )


_TEXT_MARKS = {
    BookingStatus.PENDING: "P",
    BookingStatus.APPROVED: "A",
    BookingStatus.COMPLETED: "C",
    BookingStatus.REJECTED: "R",
    BookingStatus.CANCELLED: "X",
}


def render_text(grid: CalendarGridResponse) -> str:
    """Plain-text rendering of the grid (one status letter per booking, '.' for free)."""
    name_width = max([len(row.car_name) for row in grid.rows] + [3])
    header = " " * name_width + " |" + "".join(
        f"{d.day:>3}" + ("*" if d.is_today else " ") for d in grid.days
    )
    lines = [f"{grid.year:04d}-{grid.month:02d}", header]
    for row in grid.rows:
        cells = []
        for cell in row.cells:
            marks = "".join(_TEXT_MARKS[e.status] for e in cell.entries) or "."
            if cell.highlighted:
                marks = f"[{marks}]"
            cells.append(f"{marks[:4]:>4}")
        lines.append(f"{row.car_name:<{name_width}} |" + "".join(cells))
    legend = ", ".join(f"{_TEXT_MARKS[item.status]}={item.label}" for item in grid.legend)
    lines.append(legend)
    return "\n".join(lines)


class CalendarView:
    """
    Controller for one viewer's calendar.

    The selected car set survives month navigation. Every navigation and
    every refresh reloads the occupancy index from the data service; results
    of a reload that was superseded, or that finishes after ``dismiss()``,
    are dropped.
    """

    def __init__(
        self,
        data_service,
        month: Optional[MonthRef] = None,
        on_create_booking: Optional[CreateBookingCallback] = None,
        on_view_booking: Optional[ViewBookingCallback] = None,
        selected_car_ids: Optional[Iterable[str]] = None,
        today_provider: Callable[[], date] = date.today,
    ):
        self.data = data_service
        self.on_create_booking = on_create_booking
        self.on_view_booking = on_view_booking
        self.selected_car_ids = frozenset(str(c) for c in selected_car_ids) if selected_car_ids else None
        self.today_provider = today_provider

        self._lock = threading.Lock()
        self._month = month or MonthRef.of(today_provider())
        self._generation = 0
        self._dismissed = False
        self._highlighted: Optional[CellKey] = None
        self.loading = False
        self.index = OccupancyIndex(self._month)

    @property
    def month(self) -> MonthRef:
        return self._month

    @property
    def dismissed(self) -> bool:
        return self._dismissed

    @property
    def highlighted(self) -> Optional[CellKey]:
        return self._highlighted

    def _visible_cars(self) -> List[Car]:
        cars = self.data.list_cars(active=True)
        if self.selected_car_ids is None:
            return cars
        return [car for car in cars if str(car.id) in self.selected_car_ids]

    def select_cars(self, car_ids: Optional[Iterable[str]]) -> bool:
        self.selected_car_ids = frozenset(str(c) for c in car_ids) if car_ids else None
        return self.refresh()

    def refresh(self) -> bool:
        """Reload the index for the current month. Returns False when the result was discarded."""
        with self._lock:
            if self._dismissed:
                return False
            self._generation += 1
            generation = self._generation
            month = self._month
            self.loading = True

        try:
            cars = self._visible_cars()
            bookings = OccupancyIndex.fetch(self.data, month, cars)
        except Exception:
            with self._lock:
                if generation == self._generation:
                    self.loading = False
            raise

        with self._lock:
            if self._dismissed or generation != self._generation:
                logger.debug(f"Discarding stale calendar reload for {month}")
                return False
            self.index.replace(month, cars, bookings)
            self.loading = False
        return True

    def go_to(self, month: MonthRef) -> bool:
        with self._lock:
            self._month = month
        return self.refresh()

    def previous_month(self) -> bool:
        return self.go_to(self._month.previous())

    def next_month(self) -> bool:
        return self.go_to(self._month.next())

    def render(self) -> CalendarGridResponse:
        # "today" is read once per render and not cached between renders.
        today = self.today_provider()
        with self._lock:
            highlighted = self._highlighted
        return project_grid(self.index.month, self.index.cars, self.index, today=today, highlighted=highlighted)

    def click_empty_cell(self, car_id: str, day: int) -> None:
        month = self.index.month
        if day not in month.days():
            raise ValidationError(f"Day {day} is outside {month}", field="day")
        if not any(str(car.id) == str(car_id) for car in self.index.cars):
            raise NotFoundError("Car", car_id)
        if self.index.cell(car_id, day):
            raise ValidationError("Cell already has bookings; open one of them instead", field="day")
        if self.on_create_booking:
            self.on_create_booking(str(car_id), month.date_string(day))

    def click_entry(self, booking_id: str) -> Booking:
        found = self.index.find(booking_id)
        if found is None:
            raise NotFoundError("Booking", booking_id)
        _, booking = found
        if self.on_view_booking:
            self.on_view_booking(booking)
        return booking

    def set_highlight(self, cell: Optional[CellKey]) -> None:
        with self._lock:
            self._highlighted = cell

    def clear_highlight(self, cell: Optional[CellKey] = None) -> None:
        """Clear the highlight; with ``cell`` given, only if that cell is still the highlighted one."""
        with self._lock:
            if cell is None or self._highlighted == cell:
                self._highlighted = None

    def dismiss(self) -> None:
        with self._lock:
            self._dismissed = True
            self._highlighted = None
            self.loading = False


def grid_for_month(data_service, month: MonthRef, today: Optional[date] = None) -> CalendarGridResponse:
    """One-shot grid for an API request: load active cars and the month, then project."""
    cars: Sequence[Car] = data_service.list_cars(active=True)
    index = OccupancyIndex(month).reload(data_service, month, cars)
    return project_grid(month, cars, index, today=today)
