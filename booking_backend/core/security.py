"""
JWT token creation / verification and password hashing (bcrypt).

Besides access tokens this module issues the one-time tokens used by the
email-confirmation and password-reset flows. Those embed the account's
``security_stamp``; rotating the stamp invalidates every outstanding one.
"""

from __future__ import annotations

import secrets
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from booking_backend.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

_ALGORITHM = settings.ALGORITHM
_SECRET = settings.SECRET_KEY

EMAIL_CONFIRMATION = "email_confirmation"
PASSWORD_RESET = "password_reset"


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


def new_security_stamp() -> str:
    return uuid.uuid4().hex


# ── Access tokens ───────────────────────────────────────────────────
def create_access_token(
    user_id: uuid.UUID | str,
    username: str,
    email: str,
    roles: Iterable[str],
    expires_delta: timedelta | None = None,
) -> str:
    """Signed HS256 token: subject, name, email and one role claim per role."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "name": username,
        "email": email,
        "role": list(roles),
        "iss": settings.API_BACK_URL,
        "aud": settings.API_BACK_URL,
        "iat": now,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(claims, _SECRET, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> dict | None:
    """Return payload dict if *access* token is valid, else ``None``."""
    try:
        payload = jwt.decode(
            token,
            _SECRET,
            algorithms=[_ALGORITHM],
            audience=settings.API_BACK_URL,
            issuer=settings.API_BACK_URL,
        )
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    return payload


# ── Refresh tokens (opaque, stored server-side) ─────────────────────
def generate_refresh_token() -> str:
    return secrets.token_urlsafe(48)


def refresh_token_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)


# ── One-time purpose tokens ─────────────────────────────────────────
def create_purpose_token(user_id: uuid.UUID | str, purpose: str, security_stamp: str) -> str:
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.EMAIL_TOKEN_EXPIRE_HOURS)
    return jwt.encode(
        {
            "sub": str(user_id),
            "purpose": purpose,
            "stamp": security_stamp,
            "exp": expire,
        },
        _SECRET,
        algorithm=_ALGORITHM,
    )


def verify_purpose_token(
    token: str, user_id: uuid.UUID | str, purpose: str, security_stamp: str
) -> bool:
    """True when *token* was issued for this user, purpose and stamp and has not expired."""
    try:
        payload = jwt.decode(token, _SECRET, algorithms=[_ALGORITHM])
    except JWTError:
        return False
    return (
        payload.get("purpose") == purpose
        and payload.get("sub") == str(user_id)
        and payload.get("stamp") == security_stamp
    )
