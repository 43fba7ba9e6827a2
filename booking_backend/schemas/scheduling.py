"""Pydantic schemas for slots, orders and bookings."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_backend.schemas.common import LookupRead
from booking_backend.schemas.user import UserSummary


def _as_utc(v: datetime | None) -> datetime | None:
    if v is None:
        return v
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


# ── Slots ───────────────────────────────────────────────────────────
class SlotCreate(BaseModel):
    date_from: datetime
    date_to: datetime
    type_id: uuid.UUID
    teacher_id: uuid.UUID

    @field_validator("date_from", "date_to")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    @model_validator(mode="after")
    def _window(self):
        if self.date_to <= self.date_from:
            raise ValueError("date_to must be after date_from")
        return self


class SlotUpdate(BaseModel):
    date_from: datetime | None = None
    date_to: datetime | None = None
    type_id: uuid.UUID | None = None
    teacher_id: uuid.UUID | None = None

    @field_validator("date_from", "date_to")
    @classmethod
    def _utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class SlotRead(BaseModel):
    id: uuid.UUID
    date_from: datetime
    date_to: datetime
    type_id: uuid.UUID
    teacher_id: uuid.UUID
    type: LookupRead | None = None
    teacher: UserSummary | None = None
    is_booked: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


# ── Orders ──────────────────────────────────────────────────────────
class OrderCreate(BaseModel):
    student_id: uuid.UUID | None = None
    total_amount: float = Field(default=0, ge=0)
    reduction_amount: float = Field(default=0, ge=0)
    reduction_percentage: int = Field(default=0, ge=0, le=100)

    @model_validator(mode="after")
    def _reduction_bounded(self):
        if self.reduction_amount > self.total_amount:
            raise ValueError("reduction_amount cannot exceed total_amount")
        return self


class OrderUpdate(BaseModel):
    total_amount: float | None = Field(default=None, ge=0)
    reduction_amount: float | None = Field(default=None, ge=0)
    reduction_percentage: int | None = Field(default=None, ge=0, le=100)


class BookingBrief(BaseModel):
    id: uuid.UUID
    title: str
    slot_id: uuid.UUID
    archived_at: datetime | None = None

    model_config = {"from_attributes": True}


class OrderRead(BaseModel):
    id: uuid.UUID
    student_id: uuid.UUID
    total_amount: float
    reduction_amount: float
    reduction_percentage: int
    final_amount: float
    bookings: list[BookingBrief] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}

    @field_validator("bookings", mode="before")
    @classmethod
    def _active_only(cls, v: object) -> list:
        return [b for b in (v or []) if getattr(b, "archived_at", None) is None]


# ── Bookings ────────────────────────────────────────────────────────
class BookingCreate(BaseModel):
    slot_id: uuid.UUID
    title: str = Field(min_length=1, max_length=128)
    description: str = Field(default="", max_length=512)
    order_id: uuid.UUID | None = None
    student_id: uuid.UUID | None = None


class BookingRead(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    slot_id: uuid.UUID
    order_id: uuid.UUID
    student_id: uuid.UUID
    slot: SlotRead | None = None
    archived_at: datetime | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
