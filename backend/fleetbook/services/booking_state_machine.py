"""
Booking status state machine.

Transition edges and who may take them. Checks here run before any call to
the data service, so a rejected transition never mutates anything.
"""

from __future__ import annotations

from typing import Union

from fleetbook.models.booking import BookingStatus
from fleetbook.utils.exceptions import AuthorizationError, InvalidTransitionError
from fleetbook.utils.session_context import SessionContext


# from -> {to}; every edge is admin-only.
_ADMIN_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.APPROVED, BookingStatus.REJECTED}),
    BookingStatus.APPROVED: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.REJECTED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

# Deletion removes the row entirely and is only possible from these states.
_DELETABLE_STATUSES = frozenset({BookingStatus.PENDING})

DELETED = "deleted"


def _coerce(status: Union[str, BookingStatus]) -> BookingStatus:
    if isinstance(status, BookingStatus):
        return status
    try:
        return BookingStatus(str(status).strip().lower())
    except ValueError:
        raise InvalidTransitionError(str(status), "?", reason="unknown status")


def allowed_targets(current: Union[str, BookingStatus]) -> frozenset[BookingStatus]:
    return _ADMIN_TRANSITIONS[_coerce(current)]


def is_valid_transition(current: Union[str, BookingStatus], target: Union[str, BookingStatus]) -> bool:
    try:
        return _coerce(target) in allowed_targets(current)
    except InvalidTransitionError:
        return False


def validate_transition(
    current: Union[str, BookingStatus],
    target: Union[str, BookingStatus],
    session: SessionContext,
) -> BookingStatus:
    """Check that ``session`` may move a booking from ``current`` to ``target``.

    Raises InvalidTransitionError for edges not in the table (including
    re-applying the current status) and AuthorizationError when a valid edge
    is attempted by a non-admin. Returns the target as an enum.
    """
    current_status = _coerce(current)
    try:
        target_status = BookingStatus(str(getattr(target, "value", target)).strip().lower())
    except ValueError:
        raise InvalidTransitionError(current_status.value, str(target), reason="unknown status")

    if target_status not in _ADMIN_TRANSITIONS[current_status]:
        reason = "status is terminal" if current_status.is_terminal else None
        raise InvalidTransitionError(current_status.value, target_status.value, reason=reason)

    if not session.is_admin:
        raise AuthorizationError(
            "Only administrators can change booking status",
            details={"requested_status": target_status.value},
        )

    return target_status


def validate_deletion(current: Union[str, BookingStatus], owner_id: str, session: SessionContext) -> None:
    """Only the owning user may delete, and only while the booking is pending."""
    current_status = _coerce(current)

    if str(owner_id) != str(session.user_id):
        raise AuthorizationError(
            "Only the requester can delete this booking",
            details={"owner_id": str(owner_id)},
        )

    if current_status not in _DELETABLE_STATUSES:
        raise InvalidTransitionError(current_status.value, DELETED, reason="only pending bookings can be deleted")
