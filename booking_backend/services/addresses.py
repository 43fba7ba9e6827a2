"""Postal addresses of the signed-in user."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.exceptions import NotFound
from booking_backend.db.base import utcnow
from booking_backend.db.session import unit_of_work
from booking_backend.models import Address, User
from booking_backend.schemas.user import AddressCreate, AddressUpdate


async def list_addresses(db: AsyncSession, user: User) -> list[Address]:
    result = await db.execute(
        select(Address)
        .where(Address.user_id == user.id, Address.archived_at.is_(None))
        .order_by(Address.created_at)
    )
    return list(result.scalars().all())


async def _own_address(db: AsyncSession, user: User, address_id: uuid.UUID) -> Address:
    address = await db.get(Address, address_id)
    if address is None or address.archived_at is not None or address.user_id != user.id:
        raise NotFound("Address not found")
    return address


async def create_address(db: AsyncSession, user: User, body: AddressCreate) -> Address:
    address = Address(user_id=user.id, **body.model_dump())
    async with unit_of_work(db):
        db.add(address)
    return address


async def update_address(
    db: AsyncSession, user: User, address_id: uuid.UUID, body: AddressUpdate
) -> Address:
    address = await _own_address(db, user, address_id)
    async with unit_of_work(db):
        for field, value in body.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(address, field, value)
    return address


async def archive_address(db: AsyncSession, user: User, address_id: uuid.UUID) -> None:
    address = await _own_address(db, user, address_id)
    async with unit_of_work(db):
        address.archived_at = utcnow()
