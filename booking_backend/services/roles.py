"""Role catalogue."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.config import settings
from booking_backend.core.exceptions import ConflictError, NotFound
from booking_backend.db.base import utcnow
from booking_backend.db.session import unit_of_work
from booking_backend.models import Role, User, user_roles

logger = logging.getLogger(__name__)


def _ensure_not_builtin(role: Role) -> None:
    # Authorization matches the seeded role names, so they stay fixed.
    builtin = {
        settings.ROLE_SUPER_ADMIN,
        settings.ROLE_ADMIN,
        settings.ROLE_TEACHER,
        settings.ROLE_STUDENT,
    }
    if role.id in builtin:
        raise ConflictError(f"The built-in role '{role.name}' cannot be changed")


async def list_roles(db: AsyncSession) -> list[Role]:
    result = await db.execute(
        select(Role).where(Role.archived_at.is_(None)).order_by(Role.name)
    )
    return list(result.scalars().all())


async def get_role(db: AsyncSession, role_id: uuid.UUID) -> Role:
    role = await db.get(Role, role_id)
    if role is None or role.archived_at is not None:
        raise NotFound("Role not found")
    return role


async def get_role_by_name(db: AsyncSession, name: str) -> Role:
    result = await db.execute(
        select(Role).where(
            Role.normalized_name == name.strip().upper(), Role.archived_at.is_(None)
        )
    )
    role = result.scalar_one_or_none()
    if role is None:
        raise NotFound("Role not found")
    return role


async def _name_taken(db: AsyncSession, name: str, exclude: uuid.UUID | None = None) -> bool:
    stmt = select(Role.id).where(
        Role.normalized_name == name.strip().upper(), Role.archived_at.is_(None)
    )
    if exclude is not None:
        stmt = stmt.where(Role.id != exclude)
    return (await db.execute(stmt)).first() is not None


async def create_role(db: AsyncSession, name: str) -> Role:
    name = name.strip()
    if await _name_taken(db, name):
        raise ConflictError(f"Role '{name}' already exists")
    role = Role(name=name, normalized_name=name.upper())
    async with unit_of_work(db):
        db.add(role)
    logger.info("Role created: %s", name)
    return role


async def update_role(db: AsyncSession, role_id: uuid.UUID, name: str) -> Role:
    role = await get_role(db, role_id)
    _ensure_not_builtin(role)
    name = name.strip()
    if await _name_taken(db, name, exclude=role.id):
        raise ConflictError(f"Role '{name}' already exists")
    async with unit_of_work(db):
        role.name = name
        role.normalized_name = name.upper()
    return role


async def count_users(db: AsyncSession, role_id: uuid.UUID) -> int:
    role = await get_role(db, role_id)
    result = await db.execute(
        select(func.count())
        .select_from(user_roles)
        .join(User, User.id == user_roles.c.user_id)
        .where(user_roles.c.role_id == role.id, User.archived_at.is_(None))
    )
    return result.scalar_one()


async def archive_role(db: AsyncSession, role_id: uuid.UUID) -> None:
    role = await get_role(db, role_id)
    _ensure_not_builtin(role)
    async with unit_of_work(db):
        role.archived_at = utcnow()
    logger.info("Role archived: %s", role.name)
