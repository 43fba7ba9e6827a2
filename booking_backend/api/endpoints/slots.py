"""
Slot endpoints.

- Reads require any authenticated user.
- Create / update / delete require the Teacher, Admin or SuperAdmin role;
  teachers may only manage their own slots.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_current_user, get_db, require_roles
from booking_backend.db.seed import ADMIN, SUPER_ADMIN, TEACHER
from booking_backend.models.user import User
from booking_backend.schemas.common import ResponseEnvelope, TableState, envelope
from booking_backend.schemas.scheduling import SlotCreate, SlotRead, SlotUpdate
from booking_backend.services import slots as slots_service

router = APIRouter(prefix="/slots", tags=["slots"])

require_slot_manager = require_roles(TEACHER, ADMIN, SUPER_ADMIN)


def _many(slots) -> ResponseEnvelope:
    return envelope([SlotRead.model_validate(s) for s in slots], count=len(slots))


@router.get("/all", response_model=ResponseEnvelope[list[SlotRead]])
async def list_all_slots(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return _many(await slots_service.list_all(db))


@router.post("/list", response_model=ResponseEnvelope[list[SlotRead]])
async def list_slots(
    state: TableState,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    slots, total = await slots_service.list_slots(db, state)
    return envelope([SlotRead.model_validate(s) for s in slots], count=total)


@router.get("/available", response_model=ResponseEnvelope[list[SlotRead]])
async def list_available_slots(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    """Future slots nobody has booked yet."""
    return _many(await slots_service.list_available(db))


@router.get("/teacher/{teacher_id}", response_model=ResponseEnvelope[list[SlotRead]])
async def list_teacher_slots(
    teacher_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return _many(await slots_service.list_by_teacher(db, teacher_id))


@router.get("/{slot_id}", response_model=ResponseEnvelope[SlotRead])
async def get_slot(
    slot_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    slot = await slots_service.get_slot(db, slot_id)
    return envelope(SlotRead.model_validate(slot))


@router.post("/create", response_model=ResponseEnvelope[SlotRead], status_code=201)
async def create_slot(
    body: SlotCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_slot_manager),
):
    slot = await slots_service.create_slot(db, body, current_user)
    return envelope(SlotRead.model_validate(slot), "Slot created", status=201)


@router.put("/update/{slot_id}", response_model=ResponseEnvelope[SlotRead])
async def update_slot(
    slot_id: uuid.UUID,
    body: SlotUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_slot_manager),
):
    slot = await slots_service.update_slot(db, slot_id, body, current_user)
    return envelope(SlotRead.model_validate(slot), "Slot updated")


@router.delete("/delete/{slot_id}", response_model=ResponseEnvelope[None])
async def delete_slot(
    slot_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_slot_manager),
):
    await slots_service.delete_slot(db, slot_id, current_user)
    return envelope(message="Slot deleted")
