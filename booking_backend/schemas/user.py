"""Pydantic schemas for accounts, profiles and addresses."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from booking_backend.schemas.common import LookupRead


def _normalise_email(v: str) -> str:
    v = v.strip().lower()
    local, _, domain = v.partition("@")
    if not local or "." not in domain:
        raise ValueError("Invalid email address")
    return v


def _check_password(v: str) -> str:
    if len(v) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not any(c.isdigit() for c in v) or not any(c.isalpha() for c in v):
        raise ValueError("Password must contain letters and digits")
    return v


class UserCreate(BaseModel):
    email: str
    password: str
    first_name: str = Field(min_length=1, max_length=64)
    last_name: str = Field(min_length=1, max_length=64)
    date_of_birth: date | None = None
    title: str | None = Field(default=None, max_length=128)
    description: str | None = None
    accept_terms: bool = False
    accept_marketing: bool = False
    gender_id: uuid.UUID | None = None

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _normalise_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        return _check_password(v)


class UserUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=64)
    last_name: str | None = Field(default=None, min_length=1, max_length=64)
    date_of_birth: date | None = None
    title: str | None = Field(default=None, max_length=128)
    description: str | None = None
    accept_terms: bool | None = None
    accept_marketing: bool | None = None
    gender_id: uuid.UUID | None = None


class UserRead(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    date_of_birth: date | None = None
    title: str | None = None
    description: str | None = None
    accept_terms: bool
    accept_marketing: bool
    email_confirmed: bool
    status: LookupRead | None = None
    gender: LookupRead | None = None
    roles: list[str] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("roles", mode="before")
    @classmethod
    def _role_names(cls, v: object) -> list[str]:
        return sorted(
            getattr(r, "name", r) for r in (v or []) if getattr(r, "archived_at", None) is None
        )


class UserSummary(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str

    model_config = {"from_attributes": True}


class UserStatusUpdate(BaseModel):
    status_id: uuid.UUID


class UserRolesUpdate(BaseModel):
    roles: list[str] = Field(min_length=1)


# ── Addresses ───────────────────────────────────────────────────────
class AddressCreate(BaseModel):
    street: str = Field(min_length=1, max_length=128)
    city: str = Field(min_length=1, max_length=64)
    state: str = Field(min_length=1, max_length=64)
    country: str = Field(min_length=1, max_length=64)
    zip_code: str = Field(min_length=1, max_length=16)


class AddressUpdate(BaseModel):
    street: str | None = Field(default=None, min_length=1, max_length=128)
    city: str | None = Field(default=None, min_length=1, max_length=64)
    state: str | None = Field(default=None, min_length=1, max_length=64)
    country: str | None = Field(default=None, min_length=1, max_length=64)
    zip_code: str | None = Field(default=None, min_length=1, max_length=16)


class AddressRead(AddressCreate):
    id: uuid.UUID
    user_id: uuid.UUID
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
