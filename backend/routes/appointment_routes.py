import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_user
from backend.database import get_db
from backend.models.appointment import Appointment, BookedSlot
from backend.models.user import User
from backend.routes.common import (
    DATABASE_UNAVAILABLE,
    AppointmentResponse,
    cancel_appointment_record,
    compute_doctor_slots,
    ensure_database_ready,
    get_slots_booked,
)
from backend.routes.doctor_routes import get_doctor_or_404
from backend.scheduling.availability import is_clock
from backend.scheduling.slots import format_date_key, parse_date_key

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600


class BookAppointmentRequest(BaseModel):
    doctor_id: int
    slot_date: str
    slot_time: str
    notes: str | None = None

    @field_validator('slot_date')
    @classmethod
    def validate_slot_date(cls, value: str) -> str:
        try:
            return format_date_key(parse_date_key(value))
        except ValueError as exc:
            raise ValueError('Slot date must use the D_M_YYYY format.') from exc

    @field_validator('slot_time')
    @classmethod
    def validate_slot_time(cls, value: str) -> str:
        normalized = value.strip()
        if not is_clock(normalized):
            raise ValueError('Slot time must use 24-hour HH:MM format.')
        return normalized

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


def is_slot_offered(offered_days, slot_date: str, slot_time: str) -> bool:
    for candidates in offered_days:
        for candidate in candidates:
            if candidate.date_key == slot_date and candidate.display_time == slot_time:
                return True
    return False


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    if not user.has_contact_details():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Please update your mobile number and gender in your profile before booking an appointment.',
        )

    try:
        doctor = get_doctor_or_404(data.doctor_id, db)

        if not doctor.available:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Doctor is not available.',
            )

        if data.slot_time in get_slots_booked(doctor.id, db).get(data.slot_date, []):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This time is already booked.',
            )

        offered = compute_doctor_slots(doctor, db, reference=datetime.now())
        if not is_slot_offered(offered, data.slot_date, data.slot_time):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Selected time is not open for booking.',
            )

        appointment = Appointment(
            user_id=user.id,
            doctor_id=doctor.id,
            slot_date=data.slot_date,
            slot_time=data.slot_time,
            amount=doctor.fees or 0,
            notes=data.notes,
            cancelled=False,
            payment=False,
            is_completed=False,
        )
        db.add(appointment)
        db.flush()
        db.add(
            BookedSlot(
                doctor_id=doctor.id,
                slot_date=data.slot_date,
                slot_time=data.slot_time,
                appointment_id=appointment.id,
            )
        )
        db.commit()
        db.refresh(appointment)
        logger.info('User %s booked doctor %s at %s %s', user.id, doctor.id, data.slot_date, data.slot_time)

        return appointment
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time is already booked.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('', response_model=list[AppointmentResponse])
def list_my_appointments(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return db.query(Appointment).filter(
            Appointment.user_id == user.id,
        ).order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Appointment not found.',
            )

        if appointment.user_id != user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail='Only the patient who booked this appointment can cancel it.',
            )

        cancelled = cancel_appointment_record(appointment, db)
        logger.info('User %s cancelled appointment %s', user.id, appointment_id)
        return cancelled
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
