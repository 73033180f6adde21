"""Password hashing and bearer tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from werkzeug.security import check_password_hash, generate_password_hash

from drivebroker.core.config import get_settings
from drivebroker.core.errors import MissingCredentials

_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(hashed: str, password: str) -> bool:
    return check_password_hash(hashed, password)


def issue_access_token(user_id: str, now: datetime | None = None) -> str:
    settings = get_settings()
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "typ": _TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=settings.access_token_ttl_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> str:
    """Return the user id carried by a valid access token."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise MissingCredentials("Invalid token") from exc
    subject = payload.get("sub")
    if payload.get("typ") != _TOKEN_TYPE or not isinstance(subject, str) or not subject:
        raise MissingCredentials("Invalid token")
    return subject
