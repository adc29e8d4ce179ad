from datetime import date, datetime

import pytest
from fastapi import HTTPException

from backend.models.appointment import BookedSlot
from backend.routes.doctor_routes import build_slots_response, get_doctor, list_doctor_slots, list_doctors

MONDAY_MORNING = datetime(2026, 1, 5, 7, 0)
WEDNESDAY_SHIFT = [{'day': 'Wednesday', 'start': '10:00', 'end': '13:00'}]


def test_list_doctors_hides_email_and_normalizes_speciality(db_session, make_doctor) -> None:
    make_doctor(speciality='["Dermatologist", "Cosmetologist"]')
    make_doctor(speciality='Pediatrician')

    doctors = list_doctors(db=db_session)

    assert [doctor.speciality for doctor in doctors] == [['Dermatologist', 'Cosmetologist'], ['Pediatrician']]
    assert all(doctor.email is None for doctor in doctors)


def test_get_doctor_returns_not_found_when_missing(db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_doctor(doctor_id=999, db=db_session)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Doctor not found.'


def test_get_doctor_reads_legacy_availability_strings(db_session, make_doctor) -> None:
    doctor = make_doctor(availability=['Monday: 09:00 - 17:00', 'broken'], uses_default_schedule=False)

    response = get_doctor(doctor_id=doctor.id, db=db_session)

    assert response.availability_entries == ['Monday: 09:00 - 17:00']
    assert response.uses_default_schedule is False


def test_build_slots_response_labels_each_day(db_session, make_doctor) -> None:
    doctor = make_doctor(availability=WEDNESDAY_SHIFT, uses_default_schedule=False)

    response = build_slots_response(doctor, db_session, reference=MONDAY_MORNING)

    assert len(response.days) == 7
    assert response.days[0].date == date(2026, 1, 5)
    assert response.days[0].weekday == 'MON'
    assert response.days[2].date_key == '7_1_2026'
    assert response.days[2].weekday == 'WED'
    assert [slot.time for slot in response.days[2].slots] == ['10:00', '10:30', '11:00', '11:30', '12:00', '12:30']
    assert all(day.slots == [] for index, day in enumerate(response.days) if index != 2)


def test_build_slots_response_excludes_reserved_slots(db_session, make_doctor) -> None:
    doctor = make_doctor(availability=WEDNESDAY_SHIFT, uses_default_schedule=False)
    db_session.add(BookedSlot(doctor_id=doctor.id, slot_date='7_1_2026', slot_time='11:00'))
    db_session.commit()

    response = build_slots_response(doctor, db_session, reference=MONDAY_MORNING)

    assert [slot.time for slot in response.days[2].slots] == ['10:00', '10:30', '11:30', '12:00', '12:30']


def test_build_slots_response_is_empty_for_unavailable_doctor(db_session, make_doctor) -> None:
    doctor = make_doctor(available=False)

    response = build_slots_response(doctor, db_session, reference=MONDAY_MORNING)

    assert response.available is False
    assert all(day.slots == [] for day in response.days)


def test_list_doctor_slots_uses_default_schedule(db_session, make_doctor) -> None:
    doctor = make_doctor()

    response = list_doctor_slots(doctor_id=doctor.id, db=db_session)

    assert len(response.days) == 7
    assert [slot.time for slot in response.days[1].slots][:2] == ['10:00', '10:30']


def test_list_doctors_tolerates_invalid_stored_availability(db_session, make_doctor) -> None:
    make_doctor(availability=[{'day': 'Monday', 'start': '9:00', 'end': '17:00'}], uses_default_schedule=False)
    make_doctor()

    doctors = list_doctors(db=db_session)

    assert len(doctors) == 2
    assert doctors[0].availability == []
    assert doctors[0].uses_default_schedule is False
