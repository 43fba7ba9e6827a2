"""
User administration endpoints.

- Reading a single profile requires any authenticated user.
- Listing and every mutation require the Admin or SuperAdmin role.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_current_user, get_db, require_admin
from booking_backend.models.user import User
from booking_backend.schemas.common import ResponseEnvelope, TableState, envelope
from booking_backend.schemas.user import UserRead, UserRolesUpdate, UserStatusUpdate
from booking_backend.services import auth as auth_service
from booking_backend.services import users as users_service

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/list", response_model=ResponseEnvelope[list[UserRead]])
async def list_users(
    state: TableState,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    """Filter / sort / paginate users; ``count`` is the unpaginated total."""
    users, total = await users_service.list_users(db, state)
    return envelope([UserRead.model_validate(u) for u in users], count=total)


@router.get("/{user_id}", response_model=ResponseEnvelope[UserRead])
async def get_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    user = await auth_service.get_user(db, user_id)
    return envelope(UserRead.model_validate(user))


@router.put("/{user_id}/status", response_model=ResponseEnvelope[UserRead])
async def update_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    user = await users_service.set_status(db, user_id, body.status_id)
    return envelope(UserRead.model_validate(user), "Status updated")


@router.put("/{user_id}/roles", response_model=ResponseEnvelope[UserRead])
async def update_roles(
    user_id: uuid.UUID,
    body: UserRolesUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    user = await users_service.set_roles(db, user_id, body.roles)
    return envelope(UserRead.model_validate(user), "Roles updated")


@router.delete("/{user_id}", response_model=ResponseEnvelope[None])
async def archive_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    await users_service.archive_user(db, user_id)
    return envelope(message="User deleted")
