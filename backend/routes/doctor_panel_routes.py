import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import get_current_doctor
from backend.database import get_db
from backend.models.appointment import Appointment
from backend.models.doctor import Doctor
from backend.routes.common import (
    DATABASE_UNAVAILABLE,
    AddressModel,
    AppointmentResponse,
    DoctorResponse,
    cancel_appointment_record,
    complete_appointment_record,
    ensure_database_ready,
    to_doctor_response,
)
from backend.scheduling.availability import AvailabilityWindow, normalize_availability

router = APIRouter(tags=['doctor'])

logger = logging.getLogger(__name__)

MAX_ABOUT_LENGTH = 2000


class UpdateDoctorProfileRequest(BaseModel):
    fees: float | None = None
    address: AddressModel | None = None
    available: bool | None = None
    about: str | None = None
    availability: list[AvailabilityWindow | str] | None = None
    uses_default_schedule: bool | None = None

    @field_validator('fees')
    @classmethod
    def validate_fees(cls, value: float | None) -> float | None:
        if value is not None and value < 0:
            raise ValueError('Fees cannot be negative.')
        return value

    @field_validator('about')
    @classmethod
    def validate_about(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if len(normalized) > MAX_ABOUT_LENGTH:
            raise ValueError(f'About must be {MAX_ABOUT_LENGTH} characters or fewer.')
        return normalized


def apply_availability_update(
    doctor: Doctor,
    availability: list[AvailabilityWindow | str] | None,
    uses_default_schedule: bool | None,
) -> None:
    """Replace the doctor's availability wholesale and settle the default-schedule flag.

    Without an explicit flag, saving an empty list keeps the doctor on the
    default schedule and saving any shift turns it off.
    """
    if availability is not None:
        windows = normalize_availability(availability)
        doctor.availability = [window.model_dump() for window in windows]
        if uses_default_schedule is None:
            uses_default_schedule = not windows

    if uses_default_schedule is not None:
        doctor.uses_default_schedule = uses_default_schedule


def get_own_appointment(appointment_id: int, doctor: Doctor, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )

    if appointment.doctor_id != doctor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the assigned doctor can update this appointment.',
        )

    return appointment


@router.get('/profile', response_model=DoctorResponse)
def get_doctor_profile(
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return to_doctor_response(doctor, db)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.put('/profile', response_model=DoctorResponse)
def update_doctor_profile(
    data: UpdateDoctorProfileRequest,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        if data.fees is not None:
            doctor.fees = data.fees
        if data.address is not None:
            doctor.address = data.address.model_dump()
        if data.available is not None:
            doctor.available = data.available
        if data.about is not None:
            doctor.about = data.about
        apply_availability_update(doctor, data.availability, data.uses_default_schedule)

        db.commit()
        db.refresh(doctor)
        logger.info('Doctor %s updated profile', doctor.id)

        return to_doctor_response(doctor, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_doctor_appointments(
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return db.query(Appointment).filter(
            Appointment.doctor_id == doctor.id,
        ).order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_doctor_appointment(
    appointment_id: int,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_own_appointment(appointment_id, doctor, db)
        cancelled = cancel_appointment_record(appointment, db)
        logger.info('Doctor %s cancelled appointment %s', doctor.id, appointment_id)
        return cancelled
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('/appointments/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_doctor_appointment(
    appointment_id: int,
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_own_appointment(appointment_id, doctor, db)
        return complete_appointment_record(appointment, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
