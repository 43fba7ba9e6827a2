"""Pydantic schemas for roles."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class RoleCreate(BaseModel):
    name: str = Field(min_length=2, max_length=64)


class RoleUpdate(BaseModel):
    name: str = Field(min_length=2, max_length=64)


class RoleRead(BaseModel):
    id: uuid.UUID
    name: str
    normalized_name: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}
