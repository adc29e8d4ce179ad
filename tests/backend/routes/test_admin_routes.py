import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from backend.auth.dependencies import AuthContext
from backend.models.appointment import Appointment, BookedSlot
from backend.models.doctor import Doctor
from backend.routes.admin_routes import (
    PLACEHOLDER_IMAGE_URL,
    CreateDoctorRequest,
    add_doctor,
    cancel_any_appointment,
    complete_any_appointment,
    delete_doctor,
    list_all_appointments,
    list_all_doctors,
    list_patients,
    toggle_doctor_availability,
)

ADMIN = AuthContext(subject='admin-1', role='admin', email='admin@clinic.test')


def _doctor_request(**overrides) -> CreateDoctorRequest:
    values = {
        'name': ' Dr. Meera Roy ',
        'email': ' Meera.Roy@Clinic.Test ',
        'speciality': '["Gynecologist", "Obstetrician"]',
        'degree': 'MBBS, MD',
        'experience': '10 Years',
        'about': 'Women health specialist.',
        'fees': 800,
    }
    values.update(overrides)
    return CreateDoctorRequest(**values)


def _book(db_session, doctor, user, slot_time='10:00') -> Appointment:
    appointment = Appointment(user_id=user.id, doctor_id=doctor.id, slot_date='7_1_2026', slot_time=slot_time)
    db_session.add(appointment)
    db_session.flush()
    db_session.add(
        BookedSlot(doctor_id=doctor.id, slot_date='7_1_2026', slot_time=slot_time, appointment_id=appointment.id)
    )
    db_session.commit()
    db_session.refresh(appointment)
    return appointment


def test_create_doctor_request_normalizes_fields() -> None:
    request = _doctor_request()

    assert request.name == 'Dr. Meera Roy'
    assert request.email == 'meera.roy@clinic.test'
    assert request.speciality == ['Gynecologist', 'Obstetrician']


@pytest.mark.parametrize(
    'overrides',
    [
        {'email': 'not-an-email'},
        {'name': '   '},
        {'speciality': []},
        {'fees': -10},
    ],
)
def test_create_doctor_request_rejects_invalid_fields(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        _doctor_request(**overrides)


def test_add_doctor_defaults_to_default_schedule(db_session) -> None:
    response = add_doctor(data=_doctor_request(), admin=ADMIN, db=db_session)

    assert response.email == 'meera.roy@clinic.test'
    assert response.image == PLACEHOLDER_IMAGE_URL
    assert response.available is True
    assert response.uses_default_schedule is True
    assert response.availability == []


def test_add_doctor_stores_typed_availability(db_session) -> None:
    response = add_doctor(
        data=_doctor_request(availability=['Monday: 09:00 - 13:00', {'day': 'Thursday', 'start': '15:00', 'end': '19:00'}]),
        admin=ADMIN,
        db=db_session,
    )

    stored = db_session.query(Doctor).filter(Doctor.id == response.id).one()
    assert stored.availability == [
        {'day': 'Monday', 'start': '09:00', 'end': '13:00'},
        {'day': 'Thursday', 'start': '15:00', 'end': '19:00'},
    ]
    assert stored.uses_default_schedule is False


def test_add_doctor_rejects_duplicate_email(db_session, make_doctor) -> None:
    make_doctor(email='meera.roy@clinic.test')

    with pytest.raises(HTTPException) as exception_info:
        add_doctor(data=_doctor_request(), admin=ADMIN, db=db_session)

    assert exception_info.value.status_code == 409


def test_list_all_doctors_includes_email(db_session, make_doctor) -> None:
    make_doctor(email='visible@clinic.test')

    doctors = list_all_doctors(admin=ADMIN, db=db_session)

    assert [doctor.email for doctor in doctors] == ['visible@clinic.test']


def test_delete_doctor_removes_appointments_and_reservations(db_session, make_doctor, make_user) -> None:
    doctor = make_doctor()
    keep = make_doctor()
    user = make_user()
    _book(db_session, doctor, user)
    kept_appointment = _book(db_session, keep, user)

    delete_doctor(doctor_id=doctor.id, admin=ADMIN, db=db_session)

    assert db_session.query(Doctor).filter(Doctor.id == doctor.id).first() is None
    assert [appointment.id for appointment in db_session.query(Appointment).all()] == [kept_appointment.id]
    assert db_session.query(BookedSlot).filter(BookedSlot.doctor_id == doctor.id).count() == 0


def test_delete_doctor_returns_not_found_when_missing(db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        delete_doctor(doctor_id=999, admin=ADMIN, db=db_session)

    assert exception_info.value.status_code == 404


def test_toggle_doctor_availability_flips_flag(db_session, make_doctor) -> None:
    doctor = make_doctor(available=True)

    first = toggle_doctor_availability(doctor_id=doctor.id, admin=ADMIN, db=db_session)
    second = toggle_doctor_availability(doctor_id=doctor.id, admin=ADMIN, db=db_session)

    assert first.available is False
    assert second.available is True


def test_list_all_appointments_returns_every_appointment(db_session, make_doctor, make_user) -> None:
    doctor = make_doctor()
    _book(db_session, doctor, make_user(), slot_time='10:00')
    _book(db_session, doctor, make_user(), slot_time='10:30')

    appointments = list_all_appointments(admin=ADMIN, db=db_session)

    assert sorted(appointment.slot_time for appointment in appointments) == ['10:00', '10:30']


def test_cancel_any_appointment_releases_slot_and_is_idempotent(db_session, make_doctor, make_user) -> None:
    doctor = make_doctor()
    appointment = _book(db_session, doctor, make_user())

    cancel_any_appointment(appointment_id=appointment.id, admin=ADMIN, db=db_session)
    again = cancel_any_appointment(appointment_id=appointment.id, admin=ADMIN, db=db_session)

    assert again.cancelled is True
    assert db_session.query(BookedSlot).count() == 0


def test_cancel_any_appointment_rejects_completed(db_session, make_doctor, make_user) -> None:
    appointment = _book(db_session, make_doctor(), make_user())
    complete_any_appointment(appointment_id=appointment.id, admin=ADMIN, db=db_session)

    with pytest.raises(HTTPException) as exception_info:
        cancel_any_appointment(appointment_id=appointment.id, admin=ADMIN, db=db_session)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Completed appointments cannot be cancelled.'


def test_complete_any_appointment_returns_not_found_when_missing(db_session) -> None:
    with pytest.raises(HTTPException) as exception_info:
        complete_any_appointment(appointment_id=999, admin=ADMIN, db=db_session)

    assert exception_info.value.status_code == 404


def test_list_patients_orders_most_active_first(db_session, make_doctor, make_user) -> None:
    doctor = make_doctor()
    quiet = make_user(name='Quiet Patient')
    busy = make_user(name='Busy Patient', address={'line1': '9 Lake Road', 'line2': 'Durgapur'})
    occasional = make_user(name='Occasional Patient')
    _book(db_session, doctor, busy, slot_time='10:00')
    _book(db_session, doctor, busy, slot_time='10:30')
    _book(db_session, doctor, occasional, slot_time='11:00')

    patients = list_patients(admin=ADMIN, db=db_session)

    assert [(patient.id, patient.total_appointments) for patient in patients] == [
        (busy.id, 2),
        (occasional.id, 1),
        (quiet.id, 0),
    ]
    assert patients[0].name == 'Busy Patient'
    assert patients[0].phone == '9876543210'
    assert patients[0].address.line1 == '9 Lake Road'
