"""
Address book of the signed-in user.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_current_user, get_db
from booking_backend.models.user import User
from booking_backend.schemas.common import ResponseEnvelope, envelope
from booking_backend.schemas.user import AddressCreate, AddressRead, AddressUpdate
from booking_backend.services import addresses as addresses_service

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("/mine", response_model=ResponseEnvelope[list[AddressRead]])
async def list_my_addresses(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items = await addresses_service.list_addresses(db, current_user)
    return envelope([AddressRead.model_validate(a) for a in items], count=len(items))


@router.post("/create", response_model=ResponseEnvelope[AddressRead], status_code=201)
async def create_address(
    body: AddressCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    address = await addresses_service.create_address(db, current_user, body)
    return envelope(AddressRead.model_validate(address), "Address created", status=201)


@router.put("/update/{address_id}", response_model=ResponseEnvelope[AddressRead])
async def update_address(
    address_id: uuid.UUID,
    body: AddressUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    address = await addresses_service.update_address(db, current_user, address_id, body)
    return envelope(AddressRead.model_validate(address), "Address updated")


@router.delete("/delete/{address_id}", response_model=ResponseEnvelope[None])
async def archive_address(
    address_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await addresses_service.archive_address(db, current_user, address_id)
    return envelope(message="Address deleted")
