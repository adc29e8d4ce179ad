import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.database import get_db
from backend.models.doctor import Doctor
from backend.models.user import User

logger = logging.getLogger(__name__)

security = HTTPBearer()


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, resolved once per request from its bearer token."""

    subject: str
    role: str
    email: str | None = None


def get_auth_context(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthContext:
    try:
        payload = jwt_handler.decode_access_token(credentials.credentials)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")
    if role not in jwt_handler.ROLES:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token role")

    return AuthContext(subject=subject, role=role, email=payload.get("email"))


def require_role(role: str):
    def dependency(context: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if context.role != role:
            logger.warning("Auth failed: %s has role %s, %s required", context.subject, context.role, role)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Not authorized - {role} access required",
            )
        return context

    return dependency


require_admin = require_role("admin")
require_doctor = require_role("doctor")
require_user = require_role("user")


def get_current_user(
    context: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.subject == context.subject).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def get_current_doctor(
    context: AuthContext = Depends(require_doctor),
    db: Session = Depends(get_db),
) -> Doctor:
    doctor = db.query(Doctor).filter(Doctor.subject == context.subject).first()
    if doctor is None and context.email:
        # First sign-in: link the identity to the doctor record the admin created.
        doctor = db.query(Doctor).filter(Doctor.email == context.email.strip().lower()).first()
        if doctor is not None and doctor.subject is None:
            doctor.subject = context.subject
            db.commit()
            db.refresh(doctor)
        elif doctor is not None:
            doctor = None

    if doctor is None:
        logger.warning("Doctor not found for subject %s", context.subject)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return doctor
