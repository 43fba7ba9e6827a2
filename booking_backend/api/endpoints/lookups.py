"""
Lookup endpoints — genders, account statuses and slot types.

Reads are public (the registration form needs them); slot-type writes are
admin-only.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_db, require_admin
from booking_backend.models import Gender, StatusAccount, TypeSlot
from booking_backend.models.user import User
from booking_backend.schemas.common import (LookupCreate, LookupRead,
                                            LookupUpdate, ResponseEnvelope,
                                            envelope)
from booking_backend.services import lookups as lookups_service

router = APIRouter(tags=["lookups"])


async def _all(db: AsyncSession, model):
    items = await lookups_service.list_lookup(db, model)
    return envelope([LookupRead.model_validate(i) for i in items], count=len(items))


@router.get("/genders/all", response_model=ResponseEnvelope[list[LookupRead]])
async def list_genders(db: AsyncSession = Depends(get_db)):
    return await _all(db, Gender)


@router.get("/statuses/all", response_model=ResponseEnvelope[list[LookupRead]])
async def list_statuses(db: AsyncSession = Depends(get_db)):
    return await _all(db, StatusAccount)


@router.get("/type-slots/all", response_model=ResponseEnvelope[list[LookupRead]])
async def list_type_slots(db: AsyncSession = Depends(get_db)):
    return await _all(db, TypeSlot)


@router.post("/type-slots/create", response_model=ResponseEnvelope[LookupRead], status_code=201)
async def create_type_slot(
    body: LookupCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    item = await lookups_service.create_type_slot(db, body)
    return envelope(LookupRead.model_validate(item), "Slot type created", status=201)


@router.put("/type-slots/update/{type_id}", response_model=ResponseEnvelope[LookupRead])
async def update_type_slot(
    type_id: uuid.UUID,
    body: LookupUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    item = await lookups_service.update_type_slot(db, type_id, body)
    return envelope(LookupRead.model_validate(item), "Slot type updated")


@router.delete("/type-slots/delete/{type_id}", response_model=ResponseEnvelope[None])
async def archive_type_slot(
    type_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    await lookups_service.archive_type_slot(db, type_id)
    return envelope(message="Slot type deleted")
