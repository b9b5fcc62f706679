from fleetbook.models.profile import Profile, ProfileRole
from fleetbook.models.car import Car
from fleetbook.models.booking import (
    Booking,
    BookingStatus,
    OCCUPYING_STATUSES,
    STATUS_PRESENTATION,
    StatusPresentation,
    TERMINAL_STATUSES,
)

__all__ = [
    "Profile",
    "ProfileRole",
    "Car",
    "Booking",
    "BookingStatus",
    "OCCUPYING_STATUSES",
    "STATUS_PRESENTATION",
    "StatusPresentation",
    "TERMINAL_STATUSES",
]
