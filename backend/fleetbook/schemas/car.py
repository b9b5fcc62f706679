from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CarCreateRequest(BaseModel):
    name: str
    plate_number: str
    capacity: int = Field(default=4, ge=1, le=60)
    is_active: bool = True

    @field_validator("name", "plate_number")
    @classmethod
    def validate_required(cls, v: str) -> str:
        normalized = (v or "").strip()
        if not normalized:
            raise ValueError("must not be empty")
        return normalized


class CarUpdateRequest(BaseModel):
    name: Optional[str] = None
    plate_number: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1, le=60)
    is_active: Optional[bool] = None

    @field_validator("name", "plate_number")
    @classmethod
    def validate_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        normalized = v.strip()
        if not normalized:
            raise ValueError("must not be empty")
        return normalized


class CarResponse(BaseModel):
    id: str
    name: str
    plate_number: str
    capacity: int
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
