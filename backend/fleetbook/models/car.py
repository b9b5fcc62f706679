import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from fleetbook.database import Base


class Car(Base):
    __tablename__ = "cars"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False, index=True)
    plate_number = Column(String(30), nullable=False, unique=True)
    capacity = Column(Integer, nullable=False, default=4)
    # Soft-disable flag; inactive cars keep their booking history.
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)

    def __repr__(self):
        return f"<Car {self.name} ({self.plate_number})>"
