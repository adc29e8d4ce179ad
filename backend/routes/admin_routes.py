import logging
import re

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import AuthContext, require_admin
from backend.database import get_db
from backend.models.appointment import Appointment, BookedSlot
from backend.models.doctor import Doctor
from backend.models.user import User
from backend.normalization import normalize_speciality
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
from backend.routes.doctor_panel_routes import apply_availability_update
from backend.routes.doctor_routes import get_doctor_or_404
from backend.scheduling.availability import AvailabilityWindow

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
PLACEHOLDER_IMAGE_URL = 'https://via.placeholder.com/150'


class CreateDoctorRequest(BaseModel):
    name: str
    email: str
    speciality: list[str] | str
    degree: str
    experience: str
    about: str
    fees: float
    image: str | None = None
    address: AddressModel | None = None
    availability: list[AvailabilityWindow | str] | None = None
    uses_default_schedule: bool | None = None

    @field_validator('name', 'degree', 'experience', 'about')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Missing details.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not EMAIL_PATTERN.match(normalized):
            raise ValueError('Please enter a valid email.')
        return normalized

    @field_validator('speciality')
    @classmethod
    def validate_speciality(cls, value: list[str] | str) -> list[str]:
        normalized = normalize_speciality(value)
        if not normalized:
            raise ValueError('At least one speciality is required.')
        return normalized

    @field_validator('fees')
    @classmethod
    def validate_fees(cls, value: float) -> float:
        if value < 0:
            raise ValueError('Fees cannot be negative.')
        return value


class PatientSummaryResponse(BaseModel):
    id: int
    name: str
    email: str | None = None
    phone: str
    gender: str
    dob: str
    address: AddressModel
    total_appointments: int


def get_appointment_or_404(appointment_id: int, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )
    return appointment


@router.post('/doctors', response_model=DoctorResponse, status_code=status.HTTP_201_CREATED)
def add_doctor(
    data: CreateDoctorRequest,
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        existing = db.query(Doctor).filter(Doctor.email == data.email).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='A doctor with this email already exists.',
            )

        doctor = Doctor(
            name=data.name,
            email=data.email,
            image=data.image or PLACEHOLDER_IMAGE_URL,
            speciality=data.speciality,
            degree=data.degree,
            experience=data.experience,
            about=data.about,
            fees=data.fees,
            available=True,
            address=(data.address or AddressModel()).model_dump(),
            availability=[],
            uses_default_schedule=True,
        )
        apply_availability_update(doctor, data.availability, data.uses_default_schedule)

        db.add(doctor)
        db.commit()
        db.refresh(doctor)
        logger.info('Admin %s added doctor %s', admin.subject, doctor.id)

        return to_doctor_response(doctor, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/doctors', response_model=list[DoctorResponse])
def list_all_doctors(
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    ensure_database_ready()

    try:
        doctors = db.query(Doctor).order_by(Doctor.created_at.asc(), Doctor.id.asc()).all()
        return [to_doctor_response(doctor, db) for doctor in doctors]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.delete('/doctors/{doctor_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_doctor(
    doctor_id: int,
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(doctor_id, db)

        db.query(BookedSlot).filter(BookedSlot.doctor_id == doctor.id).delete(synchronize_session=False)
        removed = db.query(Appointment).filter(Appointment.doctor_id == doctor.id).delete(synchronize_session=False)
        db.delete(doctor)
        db.commit()
        logger.info('Admin %s removed doctor %s and %d appointment(s)', admin.subject, doctor_id, removed)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('/doctors/{doctor_id}/toggle-availability', response_model=DoctorResponse)
def toggle_doctor_availability(
    doctor_id: int,
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(doctor_id, db)
        doctor.available = not doctor.available
        db.commit()
        db.refresh(doctor)

        return to_doctor_response(doctor, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/patients', response_model=list[PatientSummaryResponse])
def list_patients(
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Every patient with their appointment count, most active first."""
    del admin
    ensure_database_ready()

    try:
        total_appointments = func.count(Appointment.id)
        rows = db.query(User, total_appointments).outerjoin(
            Appointment, Appointment.user_id == User.id,
        ).group_by(User.id).order_by(total_appointments.desc(), User.id.asc()).all()

        return [
            PatientSummaryResponse(
                id=user.id,
                name=user.name or '',
                email=user.email,
                phone=user.phone or '',
                gender=user.gender or '',
                dob=user.dob or '',
                address=AddressModel(**(user.address or {})),
                total_appointments=count,
            )
            for user, count in rows
        ]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_all_appointments(
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    ensure_database_ready()

    try:
        return db.query(Appointment).order_by(Appointment.created_at.desc(), Appointment.id.desc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('/appointments/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_any_appointment(
    appointment_id: int,
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)
        cancelled = cancel_appointment_record(appointment, db)
        logger.info('Admin %s cancelled appointment %s', admin.subject, appointment_id)
        return cancelled
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.post('/appointments/{appointment_id}/complete', response_model=AppointmentResponse)
def complete_any_appointment(
    appointment_id: int,
    admin: AuthContext = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del admin
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)
        return complete_appointment_record(appointment, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
