#!/usr/bin/env python3
"""
Fleet booking management tool.

This script allows you to:
- Create the schema and seed profiles and cars
- List cars and the pending approval queue
- Approve, reject or complete a booking as an admin
- Print a month of the calendar as text

Usage:
    cd backend
    source .venv/bin/activate

    python scripts/fleet_manager.py --init-db
    python scripts/fleet_manager.py --add-profile admin@example.com "Ada Admin" --admin
    python scripts/fleet_manager.py --add-car Avanza-01 "B 1234 FB"
    python scripts/fleet_manager.py --pending
    python scripts/fleet_manager.py --approve <booking-id> --as <admin-profile-id>
    python scripts/fleet_manager.py --calendar 2025-03
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional

# Add parent directory to path to import fleetbook modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleetbook.database import init_db
from fleetbook.models.booking import Booking
from fleetbook.models.profile import ProfileRole
from fleetbook.services.booking_data_service import BookingDataService
from fleetbook.services.booking_service import BookingService
from fleetbook.services.calendar_service import grid_for_month, render_text
from fleetbook.services.occupancy_service import MonthRef
from fleetbook.utils.exceptions import FleetBookingError, ValidationError
from fleetbook.utils.session_context import SessionContext


def format_booking(booking: Booking) -> str:
    """Format a booking for display."""
    return (
        f"ID: {booking.id}\n"
        f"  Car: {booking.car.name if booking.car else booking.car_id}\n"
        f"  Date: {booking.booking_date} {booking.start_time.strftime('%H:%M')}-{booking.end_time.strftime('%H:%M')}\n"
        f"  Requester: {booking.requester_name or 'N/A'}\n"
        f"  Destination: {booking.destination}\n"
        f"  Status: {booking.status}"
    )


def parse_month(value: str) -> MonthRef:
    try:
        year, month = (int(part) for part in value.split("-", 1))
        return MonthRef(year, month)
    except ValueError:
        raise ValidationError(f"Expected YYYY-MM, got '{value}'", field="calendar")


def admin_session(data: BookingDataService, profile_id: Optional[str]) -> SessionContext:
    if not profile_id:
        raise ValidationError("--as <admin-profile-id> is required for status changes", field="as")
    profile = data.get_profile(profile_id)
    if profile is None:
        raise ValidationError(f"Unknown profile: {profile_id}", field="as")
    return SessionContext.from_profile(profile)


def main(argv: Optional[List[str]] = None, data: Optional[BookingDataService] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Fleet booking management tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/fleet_manager.py --init-db
  python scripts/fleet_manager.py --list-cars
  python scripts/fleet_manager.py --pending
  python scripts/fleet_manager.py --reject <booking-id> --as <admin-profile-id>
  python scripts/fleet_manager.py --calendar 2025-03
        """
    )

    # Setup
    parser.add_argument("--init-db", action="store_true", help="Create database tables")
    parser.add_argument("--add-profile", nargs=2, metavar=("EMAIL", "NAME"), help="Create a profile")
    parser.add_argument("--admin", action="store_true", help="Give the new profile the admin role")
    parser.add_argument("--add-car", nargs=2, metavar=("NAME", "PLATE"), help="Create a car")

    # Listing
    parser.add_argument("--list-cars", action="store_true", help="List active cars")
    parser.add_argument("--pending", action="store_true", help="List bookings awaiting approval")
    parser.add_argument("--calendar", type=str, metavar="YYYY-MM", help="Print the calendar for a month")

    # Status changes
    parser.add_argument("--approve", type=str, metavar="BOOKING_ID", help="Approve a pending booking")
    parser.add_argument("--reject", type=str, metavar="BOOKING_ID", help="Reject a pending booking")
    parser.add_argument("--complete", type=str, metavar="BOOKING_ID", help="Complete an approved booking")
    parser.add_argument("--as", dest="actor", type=str, help="Admin profile id used for status changes")

    args = parser.parse_args(argv)
    data = data or BookingDataService()

    try:
        if args.init_db:
            init_db()
            print("Database tables created.")

        if args.add_profile:
            email, name = args.add_profile
            role = ProfileRole.ADMIN.value if args.admin else ProfileRole.USER.value
            profile = data.create_profile(email, name, role=role)
            print(f"Profile created: {profile.id} ({profile.email}, {profile.role})")

        if args.add_car:
            name, plate = args.add_car
            car = data.create_car(name=name, plate_number=plate)
            print(f"Car created: {car.id} ({car.name}, {car.plate_number})")

        if args.list_cars:
            for car in data.list_cars(active=True):
                print(f"{car.id}  {car.name:<20} {car.plate_number:<12} seats={car.capacity}")

        if args.pending:
            bookings = data.list_pending_bookings()
            print(f"\n{len(bookings)} booking(s) pending approval\n")
            for i, booking in enumerate(bookings, 1):
                print(f"{i}. {format_booking(booking)}\n")

        for action in ("approve", "reject", "complete"):
            booking_id = getattr(args, action)
            if booking_id:
                service = BookingService(data, admin_session(data, args.actor))
                booking = getattr(service, action)(booking_id)
                print(format_booking(booking))

        if args.calendar:
            print(render_text(grid_for_month(data, parse_month(args.calendar))))

    except FleetBookingError as e:
        print(f"Error [{e.code}]: {e.message}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
