"""Doctor model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, JSON, String
from backend.database import Base


class Doctor(Base):
    """Represents a doctor profile and its declared weekly availability."""
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String, unique=True, index=True, nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    image = Column(String, default='')
    speciality = Column(JSON, default=list)
    degree = Column(String, default='')
    experience = Column(String, default='')
    about = Column(String, default='')
    fees = Column(Float, default=0)
    available = Column(Boolean, default=True)
    address = Column(JSON, default=lambda: {'line1': '', 'line2': ''})
    availability = Column(JSON, default=list)  # list of {day, start, end}
    uses_default_schedule = Column(Boolean, default=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
