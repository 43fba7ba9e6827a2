"""
A student reserving a teacher's slot.

A slot holds at most one live booking.  The service refuses a second one up
front and the partial unique index on ``bookings.slot_id`` catches the race
between two concurrent requests.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.exceptions import (ConflictError, Forbidden,
                                             NotFound, ValidationFailed)
from booking_backend.db.base import utcnow
from booking_backend.db.session import unit_of_work
from booking_backend.models import Booking, Order, Slot, User
from booking_backend.schemas.scheduling import BookingCreate
from booking_backend.services.auth import get_user
from booking_backend.services.orders import get_order
from booking_backend.services.slots import get_slot, is_admin

logger = logging.getLogger(__name__)


def _with_slot_state():
    # Booking -> slot -> bookings is a cycle, so selectin stops at the slot.
    return selectinload(Booking.slot).selectinload(Slot.bookings)


async def get_booking(db: AsyncSession, booking_id: uuid.UUID, actor: User) -> Booking:
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id, Booking.archived_at.is_(None))
        .options(_with_slot_state())
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking not found")
    if not is_admin(actor) and actor.id not in (booking.student_id, booking.slot.teacher_id):
        raise Forbidden("You are not a party to this booking")
    return booking


async def list_mine(db: AsyncSession, actor: User) -> list[Booking]:
    result = await db.execute(
        select(Booking)
        .where(Booking.student_id == actor.id, Booking.archived_at.is_(None))
        .options(_with_slot_state())
        .order_by(Booking.created_at.desc())
    )
    return list(result.scalars().all())


async def _resolve_student(db: AsyncSession, body: BookingCreate, actor: User) -> uuid.UUID:
    if body.student_id is None or body.student_id == actor.id:
        return actor.id
    if not is_admin(actor):
        raise Forbidden("You can only book for yourself")
    return (await get_user(db, body.student_id)).id


async def create_booking(db: AsyncSession, body: BookingCreate, actor: User) -> Booking:
    student_id = await _resolve_student(db, body, actor)
    slot = await get_slot(db, body.slot_id)
    if slot.is_booked:
        raise ConflictError("This slot is already booked")
    if slot.teacher_id == student_id:
        raise ValidationFailed("A teacher cannot book their own slot")

    if body.order_id is not None:
        order = await get_order(db, body.order_id)
        if order.student_id != student_id:
            raise ValidationFailed("The order belongs to another student")
    else:
        order = Order(
            student_id=student_id, total_amount=0, reduction_amount=0, reduction_percentage=0
        )

    booking = Booking(
        title=body.title,
        description=body.description,
        slot=slot,
        student_id=student_id,
        order=order,
    )
    async with unit_of_work(db):
        db.add(booking)
    logger.info("Slot %s booked by student %s", slot.id, student_id)
    return await get_booking(db, booking.id, actor)


async def cancel_booking(db: AsyncSession, booking_id: uuid.UUID, actor: User) -> None:
    """Archive the booking; its slot becomes bookable again."""
    booking = await get_booking(db, booking_id, actor)
    if not is_admin(actor) and booking.student_id != actor.id:
        raise Forbidden("Only the student or an administrator can cancel a booking")
    async with unit_of_work(db):
        booking.archived_at = utcnow()
    logger.info("Booking %s cancelled", booking.id)
