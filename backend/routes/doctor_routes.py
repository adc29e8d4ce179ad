from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.models.doctor import Doctor
from backend.routes.common import (
    DATABASE_UNAVAILABLE,
    DoctorResponse,
    compute_doctor_slots,
    ensure_database_ready,
    to_doctor_response,
)
from backend.scheduling.slots import WEEKDAY_LABELS, format_date_key, schedule_weekday

router = APIRouter(tags=['doctors'])


class SlotResponse(BaseModel):
    instant: datetime
    time: str


class DaySlotsResponse(BaseModel):
    date: date
    date_key: str
    weekday: str
    slots: list[SlotResponse]


class DoctorSlotsResponse(BaseModel):
    doctor_id: int
    available: bool
    days: list[DaySlotsResponse]


def get_doctor_or_404(doctor_id: int, db: Session) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.id == doctor_id).first()
    if not doctor:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Doctor not found.',
        )
    return doctor


def build_slots_response(doctor: Doctor, db: Session, reference: datetime | None = None) -> DoctorSlotsResponse:
    reference = reference or datetime.now()
    generated = compute_doctor_slots(doctor, db, reference=reference)

    days: list[DaySlotsResponse] = []
    for offset, candidates in enumerate(generated):
        current_day = reference.date() + timedelta(days=offset)
        days.append(
            DaySlotsResponse(
                date=current_day,
                date_key=format_date_key(current_day),
                weekday=WEEKDAY_LABELS[schedule_weekday(current_day)],
                slots=[SlotResponse(instant=slot.instant, time=slot.display_time) for slot in candidates],
            )
        )

    return DoctorSlotsResponse(doctor_id=doctor.id, available=bool(doctor.available), days=days)


@router.get('', response_model=list[DoctorResponse])
def list_doctors(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        doctors = db.query(Doctor).order_by(Doctor.created_at.asc(), Doctor.id.asc()).all()
        return [to_doctor_response(doctor, db, include_email=False) for doctor in doctors]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/{doctor_id}', response_model=DoctorResponse)
def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(doctor_id, db)
        return to_doctor_response(doctor, db, include_email=False)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/{doctor_id}/slots', response_model=DoctorSlotsResponse)
def list_doctor_slots(doctor_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        doctor = get_doctor_or_404(doctor_id, db)
        return build_slots_response(doctor, db)
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
