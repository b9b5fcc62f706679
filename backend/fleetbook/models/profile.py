"""Profile model for signed-in users."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String

from fleetbook.database import Base


class ProfileRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class Profile(Base):
    """
    Represents a person who can request or approve car bookings.

    Attributes:
        id: Internal UUID primary key (same id the auth provider issues)
        email: Login email
        full_name: Display name shown on bookings
        role: "admin" or "user"
        department: Optional organisational unit
        created_at: Profile creation timestamp
    """
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), nullable=False, unique=True, index=True)
    full_name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default=ProfileRole.USER.value)
    department = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Profile {self.email}>"

    @property
    def is_admin(self) -> bool:
        return self.role == ProfileRole.ADMIN.value
