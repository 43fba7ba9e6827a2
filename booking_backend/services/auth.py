"""
Account lifecycle — registration, login, token refresh, email confirmation
and the password reset flow.

An account moves Pending → Confirmed through the emailed confirmation link
and may be Banned by an administrator.  Each account holds at most one
refresh-token row, replaced on login and on password reset.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from urllib.parse import quote

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.config import settings
from booking_backend.core.exceptions import (AuthFailure, DuplicateEmail,
                                             MailDeliveryError, NotFound,
                                             ValidationFailed)
from booking_backend.core.security import (EMAIL_CONFIRMATION, PASSWORD_RESET,
                                           create_access_token,
                                           create_purpose_token,
                                           generate_refresh_token,
                                           get_password_hash,
                                           new_security_stamp,
                                           refresh_token_expiry,
                                           verify_password,
                                           verify_purpose_token)
from booking_backend.db.session import unit_of_work
from booking_backend.models import Gender, RefreshToken, Role, User
from booking_backend.schemas.user import UserCreate, UserUpdate
from booking_backend.services.mail import mail_service

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_FAILURE = "Unable to process the password reset request"


# ── Lookups ─────────────────────────────────────────────────────────
async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    """Active user by id with its relationships freshly loaded; 404 otherwise."""
    result = await db.execute(
        select(User)
        .where(User.id == user_id, User.archived_at.is_(None))
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(
        select(User).where(User.email == email.strip().lower(), User.archived_at.is_(None))
    )
    return result.scalar_one_or_none()


async def ensure_gender(db: AsyncSession, gender_id: uuid.UUID) -> None:
    gender = await db.get(Gender, gender_id)
    if gender is None or gender.archived_at is not None:
        raise NotFound("Gender not found")


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def is_banned(user: User) -> bool:
    return user.status_id == settings.STATUS_BANNED


# ── Tokens ──────────────────────────────────────────────────────────
def issue_access_token(user: User) -> str:
    return create_access_token(user.id, user.username, user.email, user.role_names)


async def _rotate_refresh_token(db: AsyncSession, user: User) -> RefreshToken:
    """Create or replace the account's single refresh-token row."""
    result = await db.execute(select(RefreshToken).where(RefreshToken.user_id == user.id))
    row = result.scalar_one_or_none()
    if row is None:
        row = RefreshToken(user_id=user.id)
        db.add(row)
    row.token = generate_refresh_token()
    row.expiration_date = refresh_token_expiry()
    return row


async def revoke_refresh_token(db: AsyncSession, user_id: uuid.UUID) -> None:
    result = await db.execute(select(RefreshToken).where(RefreshToken.user_id == user_id))
    row = result.scalar_one_or_none()
    if row is not None:
        await db.delete(row)


def confirmation_link(user: User) -> str:
    token = create_purpose_token(user.id, EMAIL_CONFIRMATION, user.security_stamp)
    return (
        f"{settings.API_BACK_URL}/auth/email-confirmation"
        f"?userId={user.id}&confirmationToken={quote(token, safe='')}"
    )


def reset_password_link(user: User, token: str) -> str:
    return (
        f"{settings.API_FRONT_URL}/auth/reset-password"
        f"?userId={user.id}&resetToken={quote(token, safe='')}"
    )


# ── Registration ────────────────────────────────────────────────────
async def register(db: AsyncSession, body: UserCreate) -> tuple[User, bool]:
    """Create a Pending student account and mail its confirmation link.

    Returns the user and whether the confirmation mail went out.  With the
    ``strict`` mail policy a delivery failure rolls the account back instead.
    """
    if await get_user_by_email(db, body.email) is not None:
        raise DuplicateEmail()

    gender_id = body.gender_id or settings.GENDER_OTHER
    await ensure_gender(db, gender_id)
    student = await db.get(Role, settings.ROLE_STUDENT)

    user = User(
        id=uuid.uuid4(),
        email=body.email,
        username=body.email,
        hashed_password=get_password_hash(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        date_of_birth=body.date_of_birth,
        title=body.title,
        description=body.description,
        accept_terms=body.accept_terms,
        accept_marketing=body.accept_marketing,
        email_confirmed=False,
        security_stamp=new_security_stamp(),
        status_id=settings.STATUS_PENDING,
        gender_id=gender_id,
        roles=[student] if student is not None else [],
    )
    link = confirmation_link(user)
    strict = settings.REGISTRATION_MAIL_POLICY == "strict"

    async with unit_of_work(db):
        db.add(user)
        if strict:
            await db.flush()
            await mail_service.send_confirmation(user.email, user.first_name, link)
    logger.info("User registered: %s", user.email)

    mail_sent = True
    if not strict:
        try:
            await mail_service.send_confirmation(user.email, user.first_name, link)
        except MailDeliveryError as exc:
            mail_sent = False
            logger.warning("Confirmation mail for %s not sent: %s", user.email, exc.message)

    return await get_user(db, user.id), mail_sent


async def confirm_email(db: AsyncSession, user_id: uuid.UUID, token: str) -> User:
    user = await get_user(db, user_id)
    if not verify_purpose_token(token, user.id, EMAIL_CONFIRMATION, user.security_stamp):
        raise ValidationFailed()

    async with unit_of_work(db):
        user.email_confirmed = True
        if user.status_id == settings.STATUS_PENDING:
            user.status_id = settings.STATUS_CONFIRMED
        user.security_stamp = new_security_stamp()
    logger.info("Email confirmed for %s", user.email)
    return await get_user(db, user.id)


# ── Sessions ────────────────────────────────────────────────────────
async def login(db: AsyncSession, email: str, password: str) -> tuple[str, RefreshToken, User]:
    user = await get_user_by_email(db, email)
    if user is None:
        raise NotFound("No account found for this email")
    if not verify_password(password, user.hashed_password):
        logger.warning("Refused login for %s: bad password", user.email)
        raise AuthFailure("Invalid credentials")
    if is_banned(user):
        logger.warning("Refused login for %s: account banned", user.email)
        raise AuthFailure("This account has been banned")

    async with unit_of_work(db):
        refresh = await _rotate_refresh_token(db, user)
    logger.info("User logged in: %s", user.email)
    return issue_access_token(user), refresh, user


async def refresh_access_token(db: AsyncSession, token: str | None) -> tuple[str, RefreshToken, User]:
    """New access token for a live refresh token; the refresh token is kept."""
    if not token:
        raise AuthFailure("Refresh token missing")
    result = await db.execute(select(RefreshToken).where(RefreshToken.token == token))
    row = result.scalar_one_or_none()
    if row is None or _as_utc(row.expiration_date) <= datetime.now(timezone.utc):
        raise AuthFailure("Invalid or expired refresh token")

    user = row.user
    if user is None or user.archived_at is not None or is_banned(user):
        raise AuthFailure("Invalid or expired refresh token")
    return issue_access_token(user), row, user


async def logout(db: AsyncSession, user: User) -> None:
    async with unit_of_work(db):
        await revoke_refresh_token(db, user.id)
    logger.info("User logged out: %s", user.email)


# ── Password reset ──────────────────────────────────────────────────
async def forgot_password(db: AsyncSession, email: str) -> dict:
    """Issue a reset token; the reset link is mailed on a best-effort basis."""
    user = await get_user_by_email(db, email)
    if user is None:
        raise ValidationFailed(FORGOT_PASSWORD_FAILURE)

    token = create_purpose_token(user.id, PASSWORD_RESET, user.security_stamp)
    try:
        await mail_service.send_password_reset(
            user.email, user.first_name, reset_password_link(user, token)
        )
    except MailDeliveryError as exc:
        logger.warning("Reset mail for %s not sent: %s", user.email, exc.message)
    return {"id": user.id, "email": user.email, "reset_token": token}


async def reset_password(
    db: AsyncSession, user_id: uuid.UUID, token: str, new_password: str
) -> None:
    user = await get_user(db, user_id)
    if not verify_purpose_token(token, user.id, PASSWORD_RESET, user.security_stamp):
        raise ValidationFailed("Invalid or expired reset token")

    async with unit_of_work(db):
        user.hashed_password = get_password_hash(new_password)
        user.security_stamp = new_security_stamp()
        await _rotate_refresh_token(db, user)
    logger.info("Password reset for %s", user.email)


# ── Profile ─────────────────────────────────────────────────────────
async def update_profile(db: AsyncSession, user: User, body: UserUpdate) -> User:
    changes = body.model_dump(exclude_unset=True)
    if changes.get("gender_id") is not None:
        await ensure_gender(db, changes["gender_id"])

    async with unit_of_work(db):
        for field, value in changes.items():
            if field == "gender_id" and value is None:
                continue
            setattr(user, field, value)
    return await get_user(db, user.id)
