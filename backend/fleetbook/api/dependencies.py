from flask import current_app, g

from fleetbook.services.booking_data_service import BookingDataService
from fleetbook.services.booking_service import BookingService, RefreshSignal
from fleetbook.utils.idempotency import InFlightGuard
from fleetbook.utils.session_context import SessionContext

EXTENSION_KEY = "fleetbook"


def get_data_service() -> BookingDataService:
    """Process-wide data service registered by create_app"""
    return current_app.extensions[EXTENSION_KEY]["data_service"]


def get_in_flight_guard() -> InFlightGuard:
    return current_app.extensions[EXTENSION_KEY]["guard"]


def get_refresh_signal() -> RefreshSignal:
    return current_app.extensions[EXTENSION_KEY]["refresh_signal"]


def get_session_context() -> SessionContext:
    """Session resolved by the auth middleware; routes behind require_auth always have one."""
    return g.session_context


def get_booking_service() -> BookingService:
    # The guard is shared so repeated submissions from any request collide.
    return BookingService(
        get_data_service(),
        get_session_context(),
        guard=get_in_flight_guard(),
        refresh_signal=get_refresh_signal(),
    )
