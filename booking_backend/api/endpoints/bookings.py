"""
Booking endpoints — any authenticated user books for themself; admins may
book on behalf of a student.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_current_user, get_db
from booking_backend.models.user import User
from booking_backend.schemas.common import ResponseEnvelope, envelope
from booking_backend.schemas.scheduling import BookingCreate, BookingRead
from booking_backend.services import bookings as bookings_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/create", response_model=ResponseEnvelope[BookingRead], status_code=201)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = await bookings_service.create_booking(db, body, current_user)
    return envelope(BookingRead.model_validate(booking), "Slot booked", status=201)


@router.get("/mine", response_model=ResponseEnvelope[list[BookingRead]])
async def list_my_bookings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items = await bookings_service.list_mine(db, current_user)
    return envelope([BookingRead.model_validate(b) for b in items], count=len(items))


@router.get("/{booking_id}", response_model=ResponseEnvelope[BookingRead])
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    booking = await bookings_service.get_booking(db, booking_id, current_user)
    return envelope(BookingRead.model_validate(booking))


@router.delete("/cancel/{booking_id}", response_model=ResponseEnvelope[None])
async def cancel_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    await bookings_service.cancel_booking(db, booking_id, current_user)
    return envelope(message="Booking cancelled")
