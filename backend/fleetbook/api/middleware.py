import logging
import uuid

from flask import jsonify
from werkzeug.exceptions import HTTPException

from fleetbook.schemas.error import ErrorDetail, ErrorResponse
from fleetbook.utils.exceptions import FleetBookingError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Convert exceptions to structured error responses."""

    @app.errorhandler(FleetBookingError)
    def handle_fleet_booking_error(e: FleetBookingError):
        logger.warning(f"Fleet booking error: {e.code} - {e.message}")
        return jsonify(ErrorResponse.from_exception(e).model_dump(mode="json")), e.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        logger.warning(f"HTTP Exception: {e.code} - {e.description}")
        body = ErrorResponse(
            error=ErrorDetail(
                code="HTTP_EXCEPTION",
                message=e.description or e.name,
                details={"status_code": e.code},
            ),
            request_id=str(uuid.uuid4()),
        )
        return jsonify(body.model_dump(mode="json")), e.code

    @app.errorhandler(Exception)
    def handle_unexpected(e: Exception):
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        body = ErrorResponse(
            error=ErrorDetail(
                code="INTERNAL_SERVER_ERROR",
                message="An unexpected error occurred",
                details={"error_type": type(e).__name__},
            ),
            request_id=str(uuid.uuid4()),
        )
        return jsonify(body.model_dump(mode="json")), 500
