from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import AuthContext, get_current_user, require_user
from backend.database import get_db
from backend.models.user import User
from backend.routes.common import DATABASE_UNAVAILABLE, AddressModel, ensure_database_ready

router = APIRouter(tags=['users'])

GENDER_OPTIONS = {'male', 'female', 'other'}


class RegisterUserRequest(BaseModel):
    name: str
    email: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized


class UpdateUserProfileRequest(BaseModel):
    name: str | None = None
    phone: str | None = None
    gender: str | None = None
    dob: str | None = None
    address: AddressModel | None = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip().replace(' ', '')
        digits = normalized.removeprefix('+')
        if not digits.isdigit() or not 7 <= len(digits) <= 15:
            raise ValueError('Please enter a valid phone number.')
        return normalized

    @field_validator('gender')
    @classmethod
    def validate_gender(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip().lower()
        if normalized not in GENDER_OPTIONS:
            raise ValueError('Gender must be male, female or other.')
        return normalized


class UserResponse(BaseModel):
    id: int
    email: str | None = None
    name: str
    phone: str
    gender: str
    dob: str
    address: AddressModel

    class Config:
        from_attributes = True


@router.post('/me', response_model=UserResponse)
def register_current_user(
    data: RegisterUserRequest,
    context: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        user = db.query(User).filter(User.subject == context.subject).first()
        if user:
            return user

        email = (context.email or data.email or '').strip().lower() or None
        if email and db.query(User).filter(User.email == email).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='Email is already linked to another account.',
            )

        user = User(
            subject=context.subject,
            email=email,
            name=data.name,
            phone='',
            gender='',
            dob='',
            address=AddressModel().model_dump(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        return user
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc


@router.get('/me', response_model=UserResponse)
def get_user_profile(user: User = Depends(get_current_user)):
    return user


@router.put('/me', response_model=UserResponse)
def update_user_profile(
    data: UpdateUserProfileRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        if data.name is not None and data.name.strip():
            user.name = data.name.strip()
        if data.phone is not None:
            user.phone = data.phone
        if data.gender is not None:
            user.gender = data.gender
        if data.dob is not None:
            user.dob = data.dob.strip()
        if data.address is not None:
            user.address = data.address.model_dump()

        db.commit()
        db.refresh(user)

        return user
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE,
        ) from exc
