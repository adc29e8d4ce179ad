from datetime import datetime

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.database import ensure_appointment_schema, ensure_doctor_schema
from backend.models.appointment import Appointment, BookedSlot
from backend.models.doctor import Doctor
from backend.normalization import normalize_speciality
from backend.scheduling.availability import AvailabilityWindow, normalize_availability, schedule_from_windows
from backend.scheduling.slots import generate_slots

DATABASE_UNAVAILABLE = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class AddressModel(BaseModel):
    line1: str = ''
    line2: str = ''


class DoctorResponse(BaseModel):
    id: int
    name: str
    email: str | None = None
    image: str
    speciality: list[str]
    degree: str
    experience: str
    about: str
    fees: float
    available: bool
    address: AddressModel
    availability: list[AvailabilityWindow]
    availability_entries: list[str]
    uses_default_schedule: bool
    slots_booked: dict[str, list[str]]


class AppointmentResponse(BaseModel):
    id: int
    user_id: int
    doctor_id: int
    slot_date: str
    slot_time: str
    amount: float
    cancelled: bool
    payment: bool
    is_completed: bool
    notes: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


def ensure_database_ready() -> None:
    try:
        ensure_doctor_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


def get_slots_booked(doctor_id: int, db: Session) -> dict[str, list[str]]:
    rows = db.query(BookedSlot.slot_date, BookedSlot.slot_time).filter(
        BookedSlot.doctor_id == doctor_id,
    ).order_by(BookedSlot.slot_date.asc(), BookedSlot.slot_time.asc()).all()

    slots_booked: dict[str, list[str]] = {}
    for slot_date, slot_time in rows:
        slots_booked.setdefault(slot_date, []).append(slot_time)
    return slots_booked


def doctor_windows(doctor: Doctor) -> list[AvailabilityWindow]:
    return normalize_availability(doctor.availability or [])


def compute_doctor_slots(doctor: Doctor, db: Session, reference: datetime | None = None):
    if not doctor.available:
        return generate_slots({}, reference=reference, uses_default_schedule=False)

    return generate_slots(
        schedule_from_windows(doctor_windows(doctor)),
        get_slots_booked(doctor.id, db),
        reference=reference,
        uses_default_schedule=bool(doctor.uses_default_schedule),
    )


def to_doctor_response(doctor: Doctor, db: Session, include_email: bool = True) -> DoctorResponse:
    windows = doctor_windows(doctor)
    return DoctorResponse(
        id=doctor.id,
        name=doctor.name,
        email=doctor.email if include_email else None,
        image=doctor.image or '',
        speciality=normalize_speciality(doctor.speciality),
        degree=doctor.degree or '',
        experience=doctor.experience or '',
        about=doctor.about or '',
        fees=doctor.fees or 0,
        available=bool(doctor.available),
        address=AddressModel(**(doctor.address or {})),
        availability=windows,
        availability_entries=[window.to_entry() for window in windows],
        uses_default_schedule=bool(doctor.uses_default_schedule),
        slots_booked=get_slots_booked(doctor.id, db),
    )


def release_slot(appointment: Appointment, db: Session) -> None:
    db.query(BookedSlot).filter(
        BookedSlot.appointment_id == appointment.id,
    ).delete(synchronize_session=False)


def cancel_appointment_record(appointment: Appointment, db: Session) -> Appointment:
    if appointment.is_completed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Completed appointments cannot be cancelled.',
        )

    if not appointment.cancelled:
        appointment.cancelled = True
        release_slot(appointment, db)
        db.commit()
        db.refresh(appointment)

    return appointment


def complete_appointment_record(appointment: Appointment, db: Session) -> Appointment:
    if appointment.cancelled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Cancelled appointments cannot be completed.',
        )

    if not appointment.is_completed:
        appointment.is_completed = True
        db.commit()
        db.refresh(appointment)

    return appointment
