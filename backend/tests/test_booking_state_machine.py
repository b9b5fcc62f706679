#!/usr/bin/env python3
"""Tests for the booking status state machine and status presentation.

These tests are written to run under pytest OR as a standalone script.
"""

import sys

# Ensure fleetbook imports work when running from backend/
sys.path.append(".")

from fleetbook.models.booking import STATUS_PRESENTATION, BookingStatus
from fleetbook.services import booking_state_machine as sm
from fleetbook.utils.exceptions import AuthorizationError, InvalidTransitionError
from fleetbook.utils.session_context import SessionContext

ADMIN = SessionContext(user_id="admin-1", role="admin")
USER = SessionContext(user_id="user-1", role="user")


def _raises(exc_type, fn, *args):
    try:
        fn(*args)
    except exc_type as exc:
        return exc
    raise AssertionError(f"{fn.__name__}{args} did not raise {exc_type.__name__}")


def test_allowed_edges():
    assert sm.allowed_targets("pending") == {BookingStatus.APPROVED, BookingStatus.REJECTED}
    assert sm.allowed_targets(BookingStatus.APPROVED) == {BookingStatus.COMPLETED}
    for terminal in (BookingStatus.REJECTED, BookingStatus.COMPLETED, BookingStatus.CANCELLED):
        assert sm.allowed_targets(terminal) == frozenset()
        assert terminal.is_terminal

    assert sm.is_valid_transition("pending", "approved")
    assert not sm.is_valid_transition("pending", "completed")
    assert not sm.is_valid_transition("approved", "rejected")
    assert not sm.is_valid_transition("pending", "bogus")
    print("[PASS] allowed edges")


def test_admin_can_take_every_edge():
    assert sm.validate_transition("pending", "approved", ADMIN) == BookingStatus.APPROVED
    assert sm.validate_transition("pending", BookingStatus.REJECTED, ADMIN) == BookingStatus.REJECTED
    assert sm.validate_transition(BookingStatus.APPROVED, "Completed", ADMIN) == BookingStatus.COMPLETED
    print("[PASS] admin edges")


def test_non_admin_cannot_change_status():
    exc = _raises(AuthorizationError, sm.validate_transition, "pending", "approved", USER)
    assert exc.status_code == 403
    assert exc.details["requested_status"] == "approved"
    print("[PASS] non-admin refused")


def test_invalid_edges_are_rejected_before_permissions():
    # Edge validity is reported even for non-admins; nothing is mutated either way.
    exc = _raises(InvalidTransitionError, sm.validate_transition, "completed", "pending", USER)
    assert exc.details == {"current_status": "completed", "requested_status": "pending"}
    assert "terminal" in exc.message

    _raises(InvalidTransitionError, sm.validate_transition, "pending", "completed", ADMIN)
    _raises(InvalidTransitionError, sm.validate_transition, "rejected", "approved", ADMIN)
    # Re-applying the same status is not an edge.
    _raises(InvalidTransitionError, sm.validate_transition, "approved", "approved", ADMIN)
    _raises(InvalidTransitionError, sm.validate_transition, "pending", "archived", ADMIN)
    print("[PASS] invalid edges rejected")


def test_deletion_is_owner_only_and_pending_only():
    sm.validate_deletion("pending", "user-1", USER)

    exc = _raises(InvalidTransitionError, sm.validate_deletion, "approved", "user-1", USER)
    assert exc.details["requested_status"] == sm.DELETED

    # Admins are not owners.
    _raises(AuthorizationError, sm.validate_deletion, "pending", "user-1", ADMIN)
    _raises(AuthorizationError, sm.validate_deletion, "pending", "someone-else", USER)
    print("[PASS] deletion rules")


def test_every_status_has_distinct_presentation():
    assert set(STATUS_PRESENTATION) == set(BookingStatus)
    colors = [p.color for p in STATUS_PRESENTATION.values()]
    assert len(colors) == len(set(colors))
    assert BookingStatus.PENDING.color == "yellow"
    assert BookingStatus.PENDING.display_name == "Pending Approval"
    assert BookingStatus.APPROVED.color == "green"
    assert BookingStatus.REJECTED.color == "red"
    assert BookingStatus.COMPLETED.color == "blue"
    assert BookingStatus.CANCELLED.color == "gray"
    print("[PASS] status presentation")


if __name__ == "__main__":
    test_allowed_edges()
    test_admin_can_take_every_edge()
    test_non_admin_cannot_change_status()
    test_invalid_edges_are_rejected_before_permissions()
    test_deletion_is_owner_only_and_pending_only()
    test_every_status_has_distinct_presentation()
    print("[SUCCESS] All state machine tests passed")
