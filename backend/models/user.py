"""Patient model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, JSON, String
from backend.database import Base


class User(Base):
    """Represents a patient who books appointments."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    subject = Column(String, unique=True, index=True)  # identity provider subject
    email = Column(String, unique=True, index=True)
    name = Column(String)
    phone = Column(String, default='')
    gender = Column(String, default='')
    dob = Column(String, default='')
    address = Column(JSON, default=lambda: {'line1': '', 'line2': ''})
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    def has_contact_details(self) -> bool:
        return bool((self.phone or '').strip()) and bool((self.gender or '').strip())
