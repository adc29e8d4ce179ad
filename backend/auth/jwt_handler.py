from datetime import datetime, timedelta, timezone

import jwt

from backend.core import config

ROLES = ("admin", "doctor", "user")


def create_access_token(
    subject: str,
    role: str,
    email: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")

    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expire_minutes),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
