import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel

from fleetbook.utils.exceptions import FleetBookingError


class ErrorDetail(BaseModel):
    code: str
    message: str
    field: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
    request_id: Optional[str] = None

    @classmethod
    def from_exception(cls, exc: FleetBookingError, request_id: Optional[str] = None) -> "ErrorResponse":
        return cls(
            error=ErrorDetail(code=exc.code, message=exc.message, field=exc.field, details=exc.details),
            request_id=request_id or str(uuid.uuid4()),
        )
