"""
Role endpoints — reads for any authenticated user, writes for admins.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_current_user, get_db, require_admin
from booking_backend.models.user import User
from booking_backend.schemas.common import ResponseEnvelope, envelope
from booking_backend.schemas.role import RoleCreate, RoleRead, RoleUpdate
from booking_backend.services import roles as roles_service

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("/all", response_model=ResponseEnvelope[list[RoleRead]])
async def list_roles(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    roles = await roles_service.list_roles(db)
    return envelope([RoleRead.model_validate(r) for r in roles], count=len(roles))


@router.get("/name/{name}", response_model=ResponseEnvelope[RoleRead])
async def get_role_by_name(
    name: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    role = await roles_service.get_role_by_name(db, name)
    return envelope(RoleRead.model_validate(role))


@router.get("/{role_id}/users-count", response_model=ResponseEnvelope[int])
async def count_users(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    total = await roles_service.count_users(db, role_id)
    return envelope(total, count=total)


@router.get("/{role_id}", response_model=ResponseEnvelope[RoleRead])
async def get_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    role = await roles_service.get_role(db, role_id)
    return envelope(RoleRead.model_validate(role))


@router.post("/create", response_model=ResponseEnvelope[RoleRead], status_code=201)
async def create_role(
    body: RoleCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    role = await roles_service.create_role(db, body.name)
    return envelope(RoleRead.model_validate(role), "Role created", status=201)


@router.put("/update/{role_id}", response_model=ResponseEnvelope[RoleRead])
async def update_role(
    role_id: uuid.UUID,
    body: RoleUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    role = await roles_service.update_role(db, role_id, body.name)
    return envelope(RoleRead.model_validate(role), "Role updated")


@router.delete("/delete/{role_id}", response_model=ResponseEnvelope[None])
async def archive_role(
    role_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
):
    await roles_service.archive_role(db, role_id)
    return envelope(message="Role deleted")
