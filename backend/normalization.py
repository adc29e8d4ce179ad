"""One-time normalization of legacy doctor records.

Older records store availability as ``"Day: HH:MM - HH:MM"`` strings and
speciality either as a list or as a JSON-encoded string. Both are rewritten
into their typed form here so request handlers never re-parse them. Stored
availability records that no longer validate are dropped.
"""

import json
import logging

from sqlalchemy.orm import Session

from backend.models.doctor import Doctor
from backend.scheduling.availability import normalize_availability

logger = logging.getLogger(__name__)


def normalize_speciality(value: object) -> list[str]:
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]

    if isinstance(value, str):
        if not value.strip():
            return []
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return [value.strip()]
        if isinstance(parsed, list):
            return normalize_speciality(parsed)
        return [str(parsed)]

    return []


def normalize_doctor(doctor: Doctor) -> bool:
    """Rewrite one doctor in place; returns True when anything changed."""
    changed = False

    speciality = normalize_speciality(doctor.speciality)
    if speciality != doctor.speciality:
        doctor.speciality = speciality
        changed = True

    availability = [window.model_dump() for window in normalize_availability(doctor.availability)]
    if availability != doctor.availability:
        doctor.availability = availability
        changed = True

    if doctor.uses_default_schedule is None:
        doctor.uses_default_schedule = not doctor.availability
        changed = True

    return changed


def normalize_doctor_records(db: Session) -> int:
    updated = 0
    for doctor in db.query(Doctor).all():
        if normalize_doctor(doctor):
            updated += 1

    if updated:
        db.commit()
        logger.info('Normalized %d legacy doctor record(s)', updated)

    return updated
