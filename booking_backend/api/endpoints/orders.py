"""
Order endpoints — students see their own orders, admins see and edit all.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_current_user, get_db, require_admin
from booking_backend.models.user import User
from booking_backend.schemas.common import ResponseEnvelope, TableState, envelope
from booking_backend.schemas.scheduling import OrderCreate, OrderRead, OrderUpdate
from booking_backend.services import orders as orders_service

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/create", response_model=ResponseEnvelope[OrderRead], status_code=201)
async def create_order(
    body: OrderCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = await orders_service.create_order(db, body, current_user)
    return envelope(OrderRead.model_validate(order), "Order created", status=201)


@router.post("/list", response_model=ResponseEnvelope[list[OrderRead]])
async def list_orders(
    state: TableState,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    orders, total = await orders_service.list_orders(db, state, current_user)
    return envelope([OrderRead.model_validate(o) for o in orders], count=total)


@router.get("/{order_id}", response_model=ResponseEnvelope[OrderRead])
async def get_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    order = await orders_service.get_order(db, order_id, current_user)
    return envelope(OrderRead.model_validate(order))


@router.put("/update/{order_id}", response_model=ResponseEnvelope[OrderRead])
async def update_order(
    order_id: uuid.UUID,
    body: OrderUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    order = await orders_service.update_order(db, order_id, body)
    return envelope(OrderRead.model_validate(order), "Order updated")


@router.delete("/delete/{order_id}", response_model=ResponseEnvelope[None])
async def archive_order(
    order_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    await orders_service.archive_order(db, order_id)
    return envelope(message="Order deleted")
