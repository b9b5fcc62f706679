"""Shared setup for the booking tests (database, people, cars, bookings)."""

import os
import tempfile
from datetime import date, datetime, time
from typing import Optional, Tuple

# Settings are loaded at import time, so this must happen before any fleetbook imports.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

MEMORY_URL = "sqlite+pysqlite:///:memory:"


def setup_database(url: str = MEMORY_URL) -> None:
    """Point fleetbook.database at a fresh database and create the schema."""
    from fleetbook import database

    database.configure_engine(url)
    database.init_db()


def setup_file_database() -> str:
    """Fresh on-disk SQLite database, for tests that query from several threads."""
    path = os.path.join(tempfile.mkdtemp(prefix="fleetbook-test-"), "fleetbook.db")
    url = f"sqlite:///{path}"
    setup_database(url)
    return url


def seed_people(data) -> Tuple[object, object, object]:
    """Returns (admin, user, other_user) profiles."""
    admin = data.create_profile("admin@example.com", "Ada Admin", role="admin", department="Fleet")
    user = data.create_profile("budi@example.com", "Budi Santoso", department="Sales")
    other = data.create_profile("citra@example.com", "Citra Dewi", department="Finance")
    return admin, user, other


def seed_cars(data, *names: str):
    names = names or ("Avanza-01", "Innova-02")
    return [data.create_car(name=name, plate_number=f"B {1000 + i} FB") for i, name in enumerate(names)]


def session_for(profile):
    from fleetbook.utils.session_context import SessionContext

    return SessionContext.from_profile(profile)


def insert_booking(
    car,
    user,
    booking_date: date,
    status: str = "pending",
    created_at: Optional[datetime] = None,
    purpose: str = "Client visit",
    destination: str = "Jakarta",
    booking_id: Optional[str] = None,
) -> str:
    """Insert a booking row directly, bypassing the service (no events published)."""
    from fleetbook.database import SessionLocal
    from fleetbook.models.booking import Booking

    created_at = created_at or datetime.utcnow()
    db = SessionLocal()
    try:
        booking = Booking(
            car_id=car.id,
            user_id=user.id,
            created_by=user.id,
            booking_date=booking_date,
            start_time=time(8, 0),
            end_time=time(17, 0),
            purpose=purpose,
            destination=destination,
            status=status,
            created_at=created_at,
            updated_at=created_at,
        )
        if booking_id:
            booking.id = booking_id
        db.add(booking)
        db.commit()
        return booking.id
    finally:
        db.close()


def booking_payload(car, booking_date: str = "2025-03-10", **overrides) -> dict:
    payload = {
        "car_id": car.id,
        "booking_date": booking_date,
        "start_time": "08:00",
        "end_time": "17:00",
        "purpose": "Client visit",
        "destination": "Bandung",
    }
    payload.update(overrides)
    return payload


def set_role(profile, role: str) -> None:
    """Change a profile's role directly, as an out-of-band admin edit would."""
    from fleetbook.database import SessionLocal
    from fleetbook.models.profile import Profile

    db = SessionLocal()
    try:
        db.query(Profile).filter(Profile.id == profile.id).update({"role": role})
        db.commit()
    finally:
        db.close()
