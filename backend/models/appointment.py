"""Appointment and slot reservation model definitions."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint
from backend.database import Base


class Appointment(Base):
    """Represents a patient's appointment with a doctor."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    slot_date = Column(String, nullable=False)  # D_M_YYYY
    slot_time = Column(String, nullable=False)  # HH:MM
    amount = Column(Float, default=0)
    cancelled = Column(Boolean, default=False)
    payment = Column(Boolean, default=False)
    is_completed = Column(Boolean, default=False)
    notes = Column(String)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class BookedSlot(Base):
    """Reservation of one doctor time slot; at most one row per slot."""
    __tablename__ = "booked_slots"
    __table_args__ = (
        UniqueConstraint("doctor_id", "slot_date", "slot_time", name="uq_booked_slots_doctor_slot"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    slot_date = Column(String, nullable=False)
    slot_time = Column(String, nullable=False)
    appointment_id = Column(Integer, ForeignKey("appointments.id"))
