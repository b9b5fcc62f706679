from __future__ import annotations

from flask import Blueprint, jsonify, request

from fleetbook.api.auth_middleware import require_admin, require_auth
from fleetbook.api.dependencies import get_booking_service, get_data_service
from fleetbook.schemas.booking import BookingResponse, PendingBookingItem, PendingBookingsResponse
from fleetbook.utils.exceptions import NotFoundError


bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


@bookings_bp.route("", methods=["POST"])
@require_auth
def create_booking():
    data = request.get_json(silent=True) or {}
    booking = get_booking_service().create_booking(data)
    response = BookingResponse.from_booking(booking)
    return jsonify(response.model_dump(mode="json")), 201


@bookings_bp.route("/pending", methods=["GET"])
@require_admin
def list_pending_bookings():
    """Pending queue for the admin notification panel, oldest request first."""
    bookings = get_data_service().list_pending_bookings()
    items = [PendingBookingItem.from_booking(b) for b in bookings]
    response = PendingBookingsResponse(count=len(items), bookings=items)
    return jsonify(response.model_dump(mode="json"))


@bookings_bp.route("/<booking_id>", methods=["GET"])
@require_auth
def get_booking(booking_id: str):
    booking = get_data_service().get_booking(booking_id)
    if not booking:
        raise NotFoundError("Booking", booking_id)
    return jsonify(BookingResponse.from_booking(booking).model_dump(mode="json"))


@bookings_bp.route("/<booking_id>/approve", methods=["POST"])
@require_admin
def approve_booking(booking_id: str):
    booking = get_booking_service().approve(booking_id)
    return jsonify(BookingResponse.from_booking(booking).model_dump(mode="json"))


@bookings_bp.route("/<booking_id>/reject", methods=["POST"])
@require_admin
def reject_booking(booking_id: str):
    booking = get_booking_service().reject(booking_id)
    return jsonify(BookingResponse.from_booking(booking).model_dump(mode="json"))


@bookings_bp.route("/<booking_id>/complete", methods=["POST"])
@require_admin
def complete_booking(booking_id: str):
    booking = get_booking_service().complete(booking_id)
    return jsonify(BookingResponse.from_booking(booking).model_dump(mode="json"))


@bookings_bp.route("/<booking_id>", methods=["DELETE"])
@require_auth
def delete_booking(booking_id: str):
    # Ownership and the pending-only rule are enforced by the service.
    get_booking_service().delete_booking(booking_id)
    return "", 204
