import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.database import Base, SessionLocal, engine, ensure_appointment_schema, ensure_doctor_schema
from backend.models import appointment, doctor, user  # noqa: F401
from backend.normalization import normalize_doctor_records
from backend.routes import admin_routes, appointment_routes, doctor_panel_routes, doctor_routes, user_routes

logging.basicConfig(level=config.LOG_LEVEL)

app = FastAPI(title='Polyclinic Appointment API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_doctor_schema()
        ensure_appointment_schema()

        db = SessionLocal()
        try:
            normalize_doctor_records(db)
        finally:
            db.close()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Polyclinic API Running'}


app.include_router(doctor_routes.router, prefix='/doctors')
app.include_router(doctor_panel_routes.router, prefix='/doctor')
app.include_router(admin_routes.router, prefix='/admin')
app.include_router(user_routes.router, prefix='/users')
app.include_router(appointment_routes.router, prefix='/appointments')
