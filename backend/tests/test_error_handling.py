#!/usr/bin/env python3
"""Tests for the booking error family and its response envelope"""

import sys
sys.path.append('.')

from fleetbook.schemas.error import ErrorResponse
from fleetbook.utils.exceptions import (
    AuthorizationError,
    DuplicateSubmissionError,
    FleetBookingError,
    InvalidTransitionError,
    NotFoundError,
    TransientServiceError,
    ValidationError,
)


def test_fleet_booking_error_creation():
    """Test FleetBookingError base class"""
    error = FleetBookingError("TEST_ERROR", "Test message", 400, "field1", {"key": "value"})

    assert error.code == "TEST_ERROR"
    assert error.message == "Test message"
    assert error.status_code == 400
    assert error.field == "field1"
    assert error.details == {"key": "value"}
    assert str(error) == "Test message"
    print("[PASS] FleetBookingError creation test passed")


def test_error_codes_and_statuses():
    """Each error kind maps to one code and HTTP status"""
    cases = [
        (ValidationError("Purpose is required", "purpose"), "VALIDATION_ERROR", 400),
        (DuplicateSubmissionError("create:user-1"), "DUPLICATE_SUBMISSION", 409),
        (AuthorizationError("Admins only"), "FORBIDDEN", 403),
        (NotFoundError("Booking", "b-1"), "NOT_FOUND", 404),
        (InvalidTransitionError("approved", "pending"), "INVALID_STATUS_TRANSITION", 409),
        (TransientServiceError("list_bookings"), "SERVICE_UNAVAILABLE", 503),
    ]
    for error, code, status in cases:
        assert isinstance(error, FleetBookingError)
        assert error.code == code, error
        assert error.status_code == status, error
    print("[PASS] error codes and statuses")


def test_error_messages():
    assert NotFoundError("Booking", "b-1").message == "Booking not found: b-1"
    assert NotFoundError("Calendar view").message == "Calendar view not found"

    error = InvalidTransitionError("completed", "pending", reason="status is terminal")
    assert error.message == "Invalid status transition from completed to pending: status is terminal"
    assert error.details == {"current_status": "completed", "requested_status": "pending"}

    error = TransientServiceError("approve", "timeout")
    assert error.message == "Data service error during approve: timeout"
    assert error.details == {"operation": "approve"}
    print("[PASS] error messages")


def test_error_response_from_exception():
    """ErrorResponse carries the code, message and a request id"""
    error = ValidationError("Invalid booking request", field="end_time", details={"errors": []})
    body = ErrorResponse.from_exception(error).model_dump()

    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["message"] == "Invalid booking request"
    assert body["error"]["field"] == "end_time"
    assert body["request_id"]

    body = ErrorResponse.from_exception(error, request_id="req-1").model_dump()
    assert body["request_id"] == "req-1"
    print("[PASS] ErrorResponse from exception")


def test_pydantic_errors_become_validation_errors():
    from pydantic import ValidationError as PydanticValidationError

    from fleetbook.schemas.booking import BookingCreateRequest
    from fleetbook.utils.exceptions import validation_error_from_pydantic

    try:
        BookingCreateRequest(car_id="car-1", booking_date="2025-03-10", purpose="", destination="Bandung")
        raise AssertionError("Expected pydantic ValidationError")
    except PydanticValidationError as exc:
        error = validation_error_from_pydantic(exc, "Invalid booking request")

    assert error.field == "purpose"
    assert error.details["errors"][0]["loc"] == ["purpose"]
    print("[PASS] pydantic errors converted")


if __name__ == "__main__":
    print("Running error handling tests...")
    test_fleet_booking_error_creation()
    test_error_codes_and_statuses()
    test_error_messages()
    test_error_response_from_exception()
    test_pydantic_errors_become_validation_errors()
    print("[SUCCESS] All error handling tests passed")
