from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from fleetbook.models.booking import BookingStatus


class CalendarEntry(BaseModel):
    booking_id: str
    status: BookingStatus
    status_label: str
    status_color: str
    purpose: str
    destination: str
    start_time: str  # HH:MM
    end_time: str  # HH:MM
    requester_name: Optional[str] = None
    creator_name: Optional[str] = None


class CreateAffordance(BaseModel):
    car_id: str
    date: str  # YYYY-MM-DD


class CalendarCell(BaseModel):
    day: int
    date: str
    entries: List[CalendarEntry] = Field(default_factory=list)
    create: Optional[CreateAffordance] = None
    highlighted: bool = False


class CalendarRow(BaseModel):
    car_id: str
    car_name: str
    plate_number: str
    cells: List[CalendarCell] = Field(default_factory=list)


class CalendarDay(BaseModel):
    day: int
    date: str
    is_today: bool = False


class StatusLegendItem(BaseModel):
    status: BookingStatus
    label: str
    color: str


class CalendarGridResponse(BaseModel):
    year: int
    month: int
    days_in_month: int
    days: List[CalendarDay] = Field(default_factory=list)
    rows: List[CalendarRow] = Field(default_factory=list)
    legend: List[StatusLegendItem] = Field(default_factory=list)
