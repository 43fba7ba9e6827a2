"""Pydantic schemas for login, token refresh and the password flows."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, field_validator

from booking_backend.schemas.user import UserRead, _check_password


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()


class LoginOutput(BaseModel):
    token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserRead


class RefreshRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return v.strip().lower()


class PasswordResetResponse(BaseModel):
    id: uuid.UUID
    email: str
    reset_token: str


class ResetPasswordRequest(BaseModel):
    user_id: uuid.UUID
    reset_token: str
    password: str

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)
