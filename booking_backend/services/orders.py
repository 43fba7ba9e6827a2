"""Orders: the billing side of bookings."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.exceptions import (ConflictError, Forbidden,
                                             NotFound, ValidationFailed)
from booking_backend.db.base import utcnow
from booking_backend.db.session import unit_of_work
from booking_backend.db.table_state import apply_and_count
from booking_backend.models import Order, User
from booking_backend.schemas.common import TableState
from booking_backend.schemas.scheduling import OrderCreate, OrderUpdate
from booking_backend.services.auth import get_user
from booking_backend.services.slots import is_admin

logger = logging.getLogger(__name__)


def _money(value: float | Decimal | None) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"))


def _pick(changes: dict, field: str, current):
    value = changes.get(field)
    return current if value is None else value


def validate_totals(total: Decimal, reduction: Decimal, percentage: int) -> None:
    if total < 0:
        raise ValidationFailed("total_amount cannot be negative")
    if reduction < 0 or reduction > total:
        raise ValidationFailed("reduction_amount must be between 0 and total_amount")
    if not 0 <= percentage <= 100:
        raise ValidationFailed("reduction_percentage must be between 0 and 100")


async def get_order(db: AsyncSession, order_id: uuid.UUID, actor: User | None = None) -> Order:
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id, Order.archived_at.is_(None))
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFound("Order not found")
    if actor is not None and not is_admin(actor) and order.student_id != actor.id:
        raise Forbidden("This order belongs to another student")
    return order


async def list_orders(db: AsyncSession, state: TableState, actor: User) -> tuple[list[Order], int]:
    stmt = select(Order).where(Order.archived_at.is_(None))
    if not is_admin(actor):
        stmt = stmt.where(Order.student_id == actor.id)
    return await apply_and_count(db, stmt, Order, state)


async def create_order(db: AsyncSession, body: OrderCreate, actor: User) -> Order:
    student_id = actor.id
    if body.student_id is not None and body.student_id != actor.id:
        if not is_admin(actor):
            raise Forbidden("Orders can only be opened for yourself")
        student_id = (await get_user(db, body.student_id)).id

    total = _money(body.total_amount)
    reduction = _money(body.reduction_amount)
    validate_totals(total, reduction, body.reduction_percentage)

    order = Order(
        student_id=student_id,
        total_amount=total,
        reduction_amount=reduction,
        reduction_percentage=body.reduction_percentage,
    )
    async with unit_of_work(db):
        db.add(order)
    logger.info("Order %s opened for student %s", order.id, student_id)
    return await get_order(db, order.id)


async def update_order(db: AsyncSession, order_id: uuid.UUID, body: OrderUpdate) -> Order:
    order = await get_order(db, order_id)
    changes = body.model_dump(exclude_unset=True)

    total = _money(_pick(changes, "total_amount", order.total_amount))
    reduction = _money(_pick(changes, "reduction_amount", order.reduction_amount))
    percentage = _pick(changes, "reduction_percentage", order.reduction_percentage)
    validate_totals(total, reduction, percentage)

    async with unit_of_work(db):
        order.total_amount = total
        order.reduction_amount = reduction
        order.reduction_percentage = percentage
    logger.info("Order %s updated", order.id)
    return await get_order(db, order.id)


async def archive_order(db: AsyncSession, order_id: uuid.UUID) -> None:
    order = await get_order(db, order_id)
    if order.active_bookings:
        raise ConflictError("Cancel the order's bookings before deleting it")
    async with unit_of_work(db):
        order.archived_at = utcnow()
    logger.info("Order %s archived", order.id)
