"""Genders, account statuses and slot types."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.exceptions import ConflictError, NotFound
from booking_backend.db.base import utcnow
from booking_backend.db.session import unit_of_work
from booking_backend.models import Slot, TypeSlot
from booking_backend.schemas.common import LookupCreate, LookupUpdate

logger = logging.getLogger(__name__)


async def list_lookup(db: AsyncSession, model) -> list:
    result = await db.execute(
        select(model).where(model.archived_at.is_(None)).order_by(model.name)
    )
    return list(result.scalars().all())


async def get_type_slot(db: AsyncSession, type_id: uuid.UUID) -> TypeSlot:
    item = await db.get(TypeSlot, type_id)
    if item is None or item.archived_at is not None:
        raise NotFound("Slot type not found")
    return item


async def create_type_slot(db: AsyncSession, body: LookupCreate) -> TypeSlot:
    item = TypeSlot(**body.model_dump())
    async with unit_of_work(db):
        db.add(item)
    logger.info("Slot type created: %s", item.name)
    return item


async def update_type_slot(db: AsyncSession, type_id: uuid.UUID, body: LookupUpdate) -> TypeSlot:
    item = await get_type_slot(db, type_id)
    async with unit_of_work(db):
        for field, value in body.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(item, field, value)
    return item


async def archive_type_slot(db: AsyncSession, type_id: uuid.UUID) -> None:
    item = await get_type_slot(db, type_id)
    in_use = await db.execute(
        select(Slot.id).where(Slot.type_id == item.id, Slot.archived_at.is_(None)).limit(1)
    )
    if in_use.first() is not None:
        raise ConflictError("Slot type is still used by active slots")
    async with unit_of_work(db):
        item.archived_at = utcnow()
    logger.info("Slot type archived: %s", item.name)
