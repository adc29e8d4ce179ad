import itertools
import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-signing-key-long-enough-for-hs256-tokens')

from backend.database import Base  # noqa: E402
from backend.models.appointment import Appointment, BookedSlot  # noqa: E402
from backend.models.doctor import Doctor  # noqa: E402
from backend.models.user import User  # noqa: E402

TABLES = [User.__table__, Doctor.__table__, Appointment.__table__, BookedSlot.__table__]


@pytest.fixture
def db_session():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def make_doctor(db_session):
    counter = itertools.count(1)

    def factory(**overrides) -> Doctor:
        number = next(counter)
        values = {
            'name': f'Dr. Test {number}',
            'email': f'doctor{number}@clinic.test',
            'image': 'https://cdn.example.com/doctor.png',
            'speciality': ['General physician'],
            'degree': 'MBBS',
            'experience': '4 Years',
            'about': 'Primary care.',
            'fees': 500,
            'available': True,
            'address': {'line1': '12 Main Road', 'line2': 'Asansol'},
            'availability': [],
            'uses_default_schedule': True,
        }
        values.update(overrides)
        doctor = Doctor(**values)
        db_session.add(doctor)
        db_session.commit()
        db_session.refresh(doctor)
        return doctor

    return factory


@pytest.fixture
def make_user(db_session):
    counter = itertools.count(1)

    def factory(**overrides) -> User:
        number = next(counter)
        values = {
            'subject': f'patient-{number}',
            'email': f'patient{number}@example.com',
            'name': f'Patient {number}',
            'phone': '9876543210',
            'gender': 'female',
            'dob': '1990-04-12',
            'address': {'line1': '', 'line2': ''},
        }
        values.update(overrides)
        user = User(**values)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return factory
