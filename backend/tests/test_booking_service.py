#!/usr/bin/env python3
"""Tests for booking submission, admin transitions and owner deletion.

These tests are written to run under pytest OR as a standalone script.
"""

import sys

# Ensure fleetbook imports work when running from backend/
sys.path.append(".")

from tests.booking_fixtures import booking_payload, seed_cars, seed_people, session_for, setup_database


def _setup():
    setup_database()
    from fleetbook.services.booking_data_service import BookingDataService
    from fleetbook.services.booking_service import RefreshSignal

    data = BookingDataService()
    admin, user, other = seed_people(data)
    cars = seed_cars(data)
    signal = RefreshSignal()
    reasons = []
    signal.connect(reasons.append)
    return data, admin, user, other, cars, signal, reasons


def _service(data, profile, signal=None, guard=None):
    from fleetbook.services.booking_service import BookingService

    return BookingService(data, session_for(profile), guard=guard, refresh_signal=signal)


def test_create_booking_starts_pending():
    data, admin, user, _, cars, signal, reasons = _setup()
    service = _service(data, user, signal)

    booking = service.create_booking(booking_payload(cars[0], purpose="  Client visit  "))

    assert booking.status == "pending"
    assert booking.user_id == user.id
    assert booking.created_by == user.id
    assert booking.purpose == "Client visit"
    assert booking.car.name == "Avanza-01"
    assert booking.requester_name == "Budi Santoso"
    assert data.count_pending_bookings() == 1
    assert reasons == ["booking_created"]
    print("[PASS] create booking starts pending")


def test_create_booking_defaults_to_office_hours():
    data, _, user, _, cars, signal, _ = _setup()
    payload = booking_payload(cars[0])
    del payload["start_time"]
    del payload["end_time"]

    booking = _service(data, user, signal).create_booking(payload)

    assert booking.start_time.strftime("%H:%M") == "08:00"
    assert booking.end_time.strftime("%H:%M") == "17:00"
    print("[PASS] default booking window")


def test_create_booking_validation_leaves_nothing_behind():
    from fleetbook.utils.exceptions import ValidationError

    data, _, user, _, cars, signal, reasons = _setup()
    service = _service(data, user, signal)

    for payload, field in (
        (booking_payload(cars[0], start_time="17:00", end_time="08:00"), None),
        (booking_payload(cars[0], start_time="09:00", end_time="09:00"), None),
        (booking_payload(cars[0], purpose="   "), "purpose"),
        (booking_payload(cars[0], destination=""), "destination"),
    ):
        try:
            service.create_booking(payload)
            raise AssertionError("Expected ValidationError")
        except ValidationError as exc:
            assert exc.code == "VALIDATION_ERROR"
            assert exc.details["errors"]
            if field:
                assert exc.field == field

    assert data.count_pending_bookings() == 0
    assert reasons == []
    print("[PASS] invalid requests rejected")


def test_create_booking_requires_existing_active_car():
    from fleetbook.utils.exceptions import NotFoundError, ValidationError

    data, _, user, _, cars, signal, reasons = _setup()
    service = _service(data, user, signal)

    try:
        service.create_booking(booking_payload(cars[0], car_id="missing-car"))
        raise AssertionError("Expected NotFoundError")
    except NotFoundError:
        pass
    assert reasons == ["car_missing"]

    data.update_car(cars[1].id, is_active=False)
    try:
        service.create_booking(booking_payload(cars[1]))
        raise AssertionError("Expected ValidationError")
    except ValidationError as exc:
        assert exc.field == "car_id"

    assert data.count_pending_bookings() == 0
    print("[PASS] car must exist and be active")


def test_booking_on_behalf_of_someone_else_is_admin_only():
    from fleetbook.utils.exceptions import AuthorizationError

    data, admin, user, other, cars, signal, _ = _setup()

    try:
        _service(data, user, signal).create_booking(booking_payload(cars[0], user_id=other.id))
        raise AssertionError("Expected AuthorizationError")
    except AuthorizationError:
        pass

    booking = _service(data, admin, signal).create_booking(booking_payload(cars[0], user_id=other.id))
    assert booking.user_id == other.id
    assert booking.created_by == admin.id
    assert booking.creator_name == "Ada Admin"
    print("[PASS] admin books on behalf")


def test_approval_reduces_pending_count_by_one():
    data, admin, user, _, cars, signal, reasons = _setup()
    first = _service(data, user, signal).create_booking(booking_payload(cars[0]))
    _service(data, user, signal).create_booking(booking_payload(cars[1]))
    assert data.count_pending_bookings() == 2

    approved = _service(data, admin, signal).approve(first.id)

    assert approved.status == "approved"
    assert approved.updated_at >= approved.created_at
    assert data.count_pending_bookings() == 1
    assert reasons[-1] == "booking_status_changed"

    completed = _service(data, admin, signal).complete(approved)
    assert completed.status == "completed"
    print("[PASS] approval reduces pending count")


def test_avanza_request_through_approval():
    from fleetbook.services.calendar_service import CalendarView
    from fleetbook.services.occupancy_service import MonthRef

    data, admin, user, _, cars, signal, _ = _setup()
    avanza = cars[0]
    booking = _service(data, user, signal).create_booking(
        booking_payload(avanza, "2025-03-10", purpose="Client Visit", destination="Downtown")
    )

    assert booking.status == "pending"
    assert [b.id for b in data.list_pending_bookings()] == [booking.id]
    view = CalendarView(data, month=MonthRef(2025, 3))
    view.refresh()
    assert [b.id for b in view.index.cell(avanza.id, 10)] == [booking.id]
    pending_before = data.count_pending_bookings()

    _service(data, admin, signal).approve(booking.id)
    view.refresh()

    assert data.count_pending_bookings() == pending_before - 1
    entries = view.render().rows[0].cells[9].entries
    assert [(e.booking_id, e.status.value) for e in entries] == [(booking.id, "approved")]
    assert len(view.index) == 1
    print("[PASS] Avanza-01 request approved")


def test_rejected_transition_leaves_row_untouched():
    from fleetbook.utils.exceptions import InvalidTransitionError

    data, admin, user, _, cars, signal, _ = _setup()
    booking = _service(data, user, signal).create_booking(booking_payload(cars[0]))
    before = data.get_booking(booking.id)

    try:
        _service(data, admin, signal).complete(booking.id)
        raise AssertionError("Expected InvalidTransitionError")
    except InvalidTransitionError:
        pass

    after = data.get_booking(booking.id)
    assert (after.status, after.updated_at) == (before.status, before.updated_at)
    print("[PASS] rejected transition leaves row untouched")


def test_non_admin_cannot_approve():
    from fleetbook.utils.exceptions import AuthorizationError

    data, _, user, _, cars, signal, _ = _setup()
    service = _service(data, user, signal)
    booking = service.create_booking(booking_payload(cars[0]))

    try:
        service.approve(booking.id)
        raise AssertionError("Expected AuthorizationError")
    except AuthorizationError:
        pass

    assert data.get_booking(booking.id).status == "pending"
    print("[PASS] non-admin approve refused")


def test_stale_view_cannot_double_decide():
    from fleetbook.utils.exceptions import InvalidTransitionError

    data, admin, user, _, cars, signal, _ = _setup()
    booking = _service(data, user, signal).create_booking(booking_payload(cars[0]))

    # Two admins looking at the same pending booking.
    _service(data, admin, signal).approve(booking.id)
    try:
        _service(data, admin, signal).reject(booking)
        raise AssertionError("Expected InvalidTransitionError")
    except InvalidTransitionError as exc:
        assert exc.details["current_status"] == "approved"

    assert data.get_booking(booking.id).status == "approved"
    print("[PASS] stale decision refused")


def test_owner_cannot_delete_approved_booking():
    from fleetbook.utils.exceptions import InvalidTransitionError

    data, admin, user, _, cars, signal, _ = _setup()
    booking = _service(data, user, signal).create_booking(booking_payload(cars[0]))
    _service(data, admin, signal).approve(booking.id)

    try:
        _service(data, user, signal).delete_booking(booking.id)
        raise AssertionError("Expected InvalidTransitionError")
    except InvalidTransitionError:
        pass

    assert data.get_booking(booking.id) is not None
    print("[PASS] approved booking not deletable")


def test_owner_deletes_pending_booking():
    from fleetbook.utils.exceptions import AuthorizationError

    data, admin, user, other, cars, signal, reasons = _setup()
    booking = _service(data, user, signal).create_booking(booking_payload(cars[0]))

    for intruder in (other, admin):
        try:
            _service(data, intruder, signal).delete_booking(booking.id)
            raise AssertionError("Expected AuthorizationError")
        except AuthorizationError:
            pass

    _service(data, user, signal).delete_booking(booking.id)
    assert data.get_booking(booking.id) is None
    assert reasons[-1] == "booking_deleted"
    print("[PASS] owner deletes pending booking")


def test_missing_booking_signals_refresh():
    from fleetbook.utils.exceptions import NotFoundError

    data, admin, _, _, _, signal, reasons = _setup()
    try:
        _service(data, admin, signal).approve("does-not-exist")
        raise AssertionError("Expected NotFoundError")
    except NotFoundError as exc:
        assert exc.status_code == 404

    assert reasons == ["booking_missing"]
    print("[PASS] missing booking triggers refresh")


def test_duplicate_submission_is_refused():
    from fleetbook.utils.exceptions import DuplicateSubmissionError
    from fleetbook.utils.idempotency import InFlightGuard, create_key

    data, _, user, _, cars, signal, _ = _setup()
    guard = InFlightGuard()
    service = _service(data, user, signal, guard=guard)

    guard.acquire(create_key(user.id))
    try:
        service.create_booking(booking_payload(cars[0]))
        raise AssertionError("Expected DuplicateSubmissionError")
    except DuplicateSubmissionError as exc:
        assert exc.status_code == 409
    finally:
        guard.release(create_key(user.id))

    assert data.count_pending_bookings() == 0
    service.create_booking(booking_payload(cars[0]))
    assert data.count_pending_bookings() == 1
    assert not guard.is_in_flight(create_key(user.id))
    print("[PASS] duplicate submission refused")


def test_guard_released_after_failure():
    from fleetbook.utils.exceptions import ValidationError
    from fleetbook.utils.idempotency import InFlightGuard

    data, _, user, _, cars, signal, _ = _setup()
    guard = InFlightGuard()
    service = _service(data, user, signal, guard=guard)
    data.update_car(cars[0].id, is_active=False)

    try:
        service.create_booking(booking_payload(cars[0]))
    except ValidationError:
        pass

    service.create_booking(booking_payload(cars[1]))
    assert data.count_pending_bookings() == 1
    print("[PASS] guard released after failure")


def test_mutations_publish_events():
    from fleetbook.services.booking_events import BookingCreated, BookingDeleted, BookingStatusChanged

    data, admin, user, _, cars, signal, _ = _setup()
    received = []
    subscription = data.subscribe((BookingCreated, BookingStatusChanged, BookingDeleted), received.append)

    first = _service(data, user, signal).create_booking(booking_payload(cars[0]))
    second = _service(data, user, signal).create_booking(booking_payload(cars[1]))
    _service(data, admin, signal).reject(first.id)
    _service(data, user, signal).delete_booking(second.id)

    assert [type(e) for e in received] == [BookingCreated, BookingCreated, BookingStatusChanged, BookingDeleted]
    assert received[2].previous_status == "pending"
    assert received[2].status == "rejected"

    subscription.cancel()
    _service(data, user, signal).create_booking(booking_payload(cars[0]))
    assert len(received) == 4
    print("[PASS] mutations publish events")


def test_in_flight_guard_hold_releases():
    from fleetbook.utils.exceptions import DuplicateSubmissionError
    from fleetbook.utils.idempotency import InFlightGuard, transition_key

    guard = InFlightGuard()
    key = transition_key("b-1")
    assert key == "transition:b-1"

    try:
        with guard.hold(key):
            assert guard.is_in_flight(key)
            try:
                guard.acquire(key)
                raise AssertionError("Expected DuplicateSubmissionError")
            except DuplicateSubmissionError as exc:
                assert exc.details == {"action": key}
            raise RuntimeError("submission failed")
    except RuntimeError:
        pass

    assert not guard.is_in_flight(key)
    print("[PASS] in-flight guard")


if __name__ == "__main__":
    test_create_booking_starts_pending()
    test_create_booking_defaults_to_office_hours()
    test_create_booking_validation_leaves_nothing_behind()
    test_create_booking_requires_existing_active_car()
    test_booking_on_behalf_of_someone_else_is_admin_only()
    test_approval_reduces_pending_count_by_one()
    test_avanza_request_through_approval()
    test_rejected_transition_leaves_row_untouched()
    test_non_admin_cannot_approve()
    test_stale_view_cannot_double_decide()
    test_owner_cannot_delete_approved_booking()
    test_owner_deletes_pending_booking()
    test_missing_booking_signals_refresh()
    test_duplicate_submission_is_refused()
    test_guard_released_after_failure()
    test_mutations_publish_events()
    test_in_flight_guard_hold_releases()
    print("[SUCCESS] All booking service tests passed")
