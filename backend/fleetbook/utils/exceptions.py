class FleetBookingError(Exception):
    """Base exception for fleet booking errors"""
    def __init__(self, code: str, message: str, status_code: int = 400, field: str = None, details: dict = None):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.field = field
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(FleetBookingError):
    def __init__(self, message: str, field: str = None, details: dict = None):
        super().__init__("VALIDATION_ERROR", message, 400, field, details)


class DuplicateSubmissionError(FleetBookingError):
    """The same action is already in flight."""
    def __init__(self, action: str):
        super().__init__(
            "DUPLICATE_SUBMISSION",
            f"Action already in progress: {action}",
            409,
            details={"action": action},
        )


class AuthorizationError(FleetBookingError):
    def __init__(self, message: str, details: dict = None):
        super().__init__("FORBIDDEN", message, 403, details=details)


class NotFoundError(FleetBookingError):
    def __init__(self, resource: str, resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message += f": {resource_id}"
        super().__init__("NOT_FOUND", message, 404, details={"resource": resource, "resource_id": resource_id})


class InvalidTransitionError(FleetBookingError):
    def __init__(self, current_status: str, requested_status: str, reason: str = None):
        message = f"Invalid status transition from {current_status} to {requested_status}"
        if reason:
            message += f": {reason}"
        super().__init__(
            "INVALID_STATUS_TRANSITION",
            message,
            409,
            details={"current_status": current_status, "requested_status": requested_status}
        )


class TransientServiceError(FleetBookingError):
    def __init__(self, operation: str, reason: str = None):
        message = f"Data service error during {operation}"
        if reason:
            message += f": {reason}"
        super().__init__(
            "SERVICE_UNAVAILABLE",
            message,
            503,
            details={"operation": operation}
        )


def validation_error_from_pydantic(exc, message: str) -> ValidationError:
    """Wrap a pydantic ValidationError; details stay JSON serializable."""
    errors = [
        {"loc": [str(part) for part in e.get("loc", ())], "msg": e.get("msg"), "type": e.get("type")}
        for e in exc.errors()
    ]
    field = errors[0]["loc"][0] if errors and errors[0]["loc"] else None
    return ValidationError(message, field=field, details={"errors": errors})
