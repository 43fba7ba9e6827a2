"""
Teacher availability slots.

A teacher's active slots never overlap: two windows collide when each one
starts before the other ends.  A booked slot is frozen until its booking is
cancelled.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.exceptions import (ConflictError, Forbidden,
                                             NotFound, ValidationFailed)
from booking_backend.db.base import utcnow
from booking_backend.db.seed import ADMIN, SUPER_ADMIN, TEACHER
from booking_backend.db.session import unit_of_work
from booking_backend.db.table_state import apply_and_count
from booking_backend.models import Booking, Slot, User
from booking_backend.schemas.common import TableState
from booking_backend.schemas.scheduling import SlotCreate, SlotUpdate
from booking_backend.services.lookups import get_type_slot

logger = logging.getLogger(__name__)


def _active() -> Select:
    return select(Slot).where(Slot.archived_at.is_(None))


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def is_admin(user: User) -> bool:
    return user.has_role(ADMIN, SUPER_ADMIN)


async def get_slot(db: AsyncSession, slot_id: uuid.UUID) -> Slot:
    result = await db.execute(
        _active().where(Slot.id == slot_id).execution_options(populate_existing=True)
    )
    slot = result.scalar_one_or_none()
    if slot is None:
        raise NotFound("Slot not found")
    return slot


async def list_all(db: AsyncSession) -> list[Slot]:
    result = await db.execute(_active().order_by(Slot.date_from))
    return list(result.scalars().all())


async def list_slots(db: AsyncSession, state: TableState) -> tuple[list[Slot], int]:
    return await apply_and_count(db, _active(), Slot, state)


async def list_by_teacher(db: AsyncSession, teacher_id: uuid.UUID) -> list[Slot]:
    result = await db.execute(
        _active().where(Slot.teacher_id == teacher_id).order_by(Slot.date_from)
    )
    return list(result.scalars().all())


async def list_available(db: AsyncSession) -> list[Slot]:
    """Future slots without a live booking."""
    result = await db.execute(
        _active()
        .where(
            Slot.date_from > utcnow(),
            ~Slot.bookings.any(Booking.archived_at.is_(None)),
        )
        .order_by(Slot.date_from)
    )
    return list(result.scalars().all())


# ── Validation ──────────────────────────────────────────────────────
async def _ensure_teacher(db: AsyncSession, teacher_id: uuid.UUID) -> User:
    teacher = await db.get(User, teacher_id)
    if teacher is None or teacher.archived_at is not None:
        raise NotFound("Teacher not found")
    if not teacher.has_role(TEACHER):
        raise ValidationFailed("The selected user is not a teacher")
    return teacher


async def _ensure_no_overlap(
    db: AsyncSession,
    teacher_id: uuid.UUID,
    date_from: datetime,
    date_to: datetime,
    exclude_id: uuid.UUID | None = None,
) -> None:
    stmt = _active().where(
        Slot.teacher_id == teacher_id,
        Slot.date_from < date_to,
        Slot.date_to > date_from,
    )
    if exclude_id is not None:
        stmt = stmt.where(Slot.id != exclude_id)
    clash = (await db.execute(stmt.limit(1))).scalar_one_or_none()
    if clash is not None:
        raise ConflictError("This teacher already has a slot overlapping that time range")


def _ensure_can_manage(actor: User, teacher_id: uuid.UUID) -> None:
    if not is_admin(actor) and actor.id != teacher_id:
        raise Forbidden("Only the slot's teacher or an administrator can do this")


# ── Writes ──────────────────────────────────────────────────────────
async def create_slot(db: AsyncSession, body: SlotCreate, actor: User) -> Slot:
    _ensure_can_manage(actor, body.teacher_id)
    await _ensure_teacher(db, body.teacher_id)
    await get_type_slot(db, body.type_id)
    await _ensure_no_overlap(db, body.teacher_id, body.date_from, body.date_to)

    slot = Slot(
        date_from=body.date_from,
        date_to=body.date_to,
        type_id=body.type_id,
        teacher_id=body.teacher_id,
    )
    async with unit_of_work(db):
        db.add(slot)
    logger.info(
        "Slot created for teacher %s: %s to %s", slot.teacher_id, slot.date_from, slot.date_to
    )
    return await get_slot(db, slot.id)


async def update_slot(
    db: AsyncSession, slot_id: uuid.UUID, body: SlotUpdate, actor: User
) -> Slot:
    slot = await get_slot(db, slot_id)
    _ensure_can_manage(actor, slot.teacher_id)
    if slot.is_booked:
        raise ConflictError("A booked slot cannot be modified")

    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    date_from = _as_utc(changes.get("date_from", slot.date_from))
    date_to = _as_utc(changes.get("date_to", slot.date_to))
    teacher_id = changes.get("teacher_id", slot.teacher_id)
    if date_to <= date_from:
        raise ValidationFailed("date_to must be after date_from")
    if teacher_id != slot.teacher_id:
        _ensure_can_manage(actor, teacher_id)
        await _ensure_teacher(db, teacher_id)
    if "type_id" in changes:
        await get_type_slot(db, changes["type_id"])
    await _ensure_no_overlap(db, teacher_id, date_from, date_to, exclude_id=slot.id)

    async with unit_of_work(db):
        for field, value in changes.items():
            setattr(slot, field, value)
    logger.info("Slot %s updated", slot.id)
    return await get_slot(db, slot.id)


async def delete_slot(db: AsyncSession, slot_id: uuid.UUID, actor: User) -> None:
    slot = await get_slot(db, slot_id)
    _ensure_can_manage(actor, slot.teacher_id)
    if slot.is_booked:
        raise ConflictError("A booked slot cannot be deleted")
    async with unit_of_work(db):
        slot.archived_at = utcnow()
    logger.info("Slot %s archived", slot.id)
