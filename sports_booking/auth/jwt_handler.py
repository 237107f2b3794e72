import uuid
from datetime import datetime, timedelta, timezone

import jwt

from sports_booking.core import config


def create_access_token(
    subject: str,
    email: str | None = None,
    role: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "exp": issued_at + timedelta(minutes=expire_minutes),
        "iat": issued_at,
        "jti": uuid.uuid4().hex,
    }
    if email:
        payload["email"] = email
    if role:
        payload["role"] = role
    if config.JWT_AUDIENCE:
        payload["aud"] = config.JWT_AUDIENCE
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    options = {"verify_aud": bool(config.JWT_AUDIENCE)}
    return jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        audience=config.JWT_AUDIENCE,
        options=options,
    )
