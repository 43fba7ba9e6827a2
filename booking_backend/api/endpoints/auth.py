"""
Auth endpoints — registration, login, refresh-token cookie, email
confirmation, password reset and the signed-in user's profile.
"""

import uuid

from fastapi import APIRouter, Cookie, Depends, Query, Request, Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_current_user, get_db
from booking_backend.core.config import settings
from booking_backend.models.user import RefreshToken, User
from booking_backend.schemas.common import ResponseEnvelope, envelope
from booking_backend.schemas.token import (ForgotPasswordRequest, LoginOutput,
                                           LoginRequest,
                                           PasswordResetResponse,
                                           RefreshRequest,
                                           ResetPasswordRequest)
from booking_backend.schemas.user import UserCreate, UserRead, UserUpdate
from booking_backend.services import auth as auth_service

# Rate limiter — keyed by client IP
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)

REFRESH_COOKIE = "refreshToken"

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
    )


def _session_payload(access: str, refresh: RefreshToken, user: User) -> LoginOutput:
    return LoginOutput(
        token=access,
        refresh_token=refresh.token,
        user=UserRead.model_validate(user),
    )


@router.post("/register", response_model=ResponseEnvelope[UserRead], status_code=201)
async def register(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a Pending account and mail its confirmation link."""
    user, mail_sent = await auth_service.register(db, body)
    message = (
        "Account created, check your inbox to confirm your email"
        if mail_sent
        else "Account created, but the confirmation email could not be sent"
    )
    return envelope(UserRead.model_validate(user), message, status=201)


@router.post("/login", response_model=ResponseEnvelope[LoginOutput])
@limiter.limit("5/minute")
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Authenticate with email/password. Sets the HttpOnly refresh cookie."""
    access, refresh, user = await auth_service.login(db, body.email, body.password)
    _set_refresh_cookie(response, refresh.token)
    return envelope(_session_payload(access, refresh, user), "Login successful")


@router.post("/refresh-token", response_model=ResponseEnvelope[LoginOutput])
@limiter.limit("10/minute")
async def refresh_token(
    request: Request,
    body: RefreshRequest | None = None,
    refresh_cookie: str | None = Cookie(None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_db),
):
    # Priority: Cookie > Body
    token = refresh_cookie or (body.refresh_token if body else None)
    access, refresh, user = await auth_service.refresh_access_token(db, token)
    return envelope(_session_payload(access, refresh, user), "Token refreshed")


@router.get("/email-confirmation", response_model=ResponseEnvelope[UserRead])
async def confirm_email(
    user_id: uuid.UUID = Query(alias="userId"),
    confirmation_token: str = Query(alias="confirmationToken"),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.confirm_email(db, user_id, confirmation_token)
    return envelope(
        UserRead.model_validate(user),
        f"{settings.API_FRONT_URL}/auth/email-confirmation-success",
    )


@router.post("/forgot-password", response_model=ResponseEnvelope[PasswordResetResponse])
@limiter.limit("5/minute")
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    data = await auth_service.forgot_password(db, body.email)
    return envelope(PasswordResetResponse(**data), "Password reset token issued")


@router.post("/reset-password", response_model=ResponseEnvelope[None])
async def reset_password(
    body: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
):
    await auth_service.reset_password(db, body.user_id, body.reset_token, body.password)
    return envelope(message="Password has been reset")


@router.post("/logout", response_model=ResponseEnvelope[None])
async def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Drop the refresh token and clear its cookie."""
    await auth_service.logout(db, current_user)
    response.delete_cookie(REFRESH_COOKIE)
    return envelope(message="Logged out")


@router.get("/me", response_model=ResponseEnvelope[UserRead])
async def read_current_user(current_user: User = Depends(get_current_user)):
    return envelope(UserRead.model_validate(current_user))


@router.put("/update", response_model=ResponseEnvelope[UserRead])
async def update_current_user(
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.update_profile(db, current_user, body)
    return envelope(UserRead.model_validate(user), "Profile updated")
