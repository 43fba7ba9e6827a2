"""Response envelope, table-state request and lookup schemas shared across the API."""

from __future__ import annotations

import uuid
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ResponseEnvelope(BaseModel, Generic[T]):
    status: int
    message: str
    data: T | None = None
    count: int | None = None


# ── Table state ─────────────────────────────────────────────────────
class SortItem(BaseModel):
    field: str
    order: int = 1  # 1 ascending, any other non-zero descending, 0 ignored


class FilterItem(BaseModel):
    value: Any = None
    match_mode: str = Field(default="equals", alias="matchMode")

    model_config = {"populate_by_name": True}


class TableState(BaseModel):
    first: int = 0
    rows: int = 10
    global_search: str | None = Field(default=None, alias="globalSearch")
    sorts: list[SortItem] = Field(default_factory=list)
    filters: dict[str, FilterItem] = Field(default_factory=dict)

    model_config = {"populate_by_name": True}


# ── Lookups ─────────────────────────────────────────────────────────
class LookupRead(BaseModel):
    id: uuid.UUID
    name: str
    color: str
    icon: str | None = None

    model_config = {"from_attributes": True}


class LookupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    color: str = Field(default="#000000", max_length=16)
    icon: str | None = Field(default=None, max_length=256)


class LookupUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=64)
    color: str | None = Field(default=None, max_length=16)
    icon: str | None = Field(default=None, max_length=256)


class HealthResponse(BaseModel):
    status: str
    db: bool
    version: str


def envelope(
    data: Any = None, message: str = "Success", status: int = 200, count: int | None = None
) -> ResponseEnvelope:
    return ResponseEnvelope(status=status, message=message, data=data, count=count)
