"""Administrative user management."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.config import settings
from booking_backend.core.exceptions import NotFound, ValidationFailed
from booking_backend.db.base import utcnow
from booking_backend.db.session import unit_of_work
from booking_backend.db.table_state import apply_and_count
from booking_backend.models import Role, StatusAccount, User
from booking_backend.schemas.common import TableState
from booking_backend.services.auth import get_user, revoke_refresh_token

logger = logging.getLogger(__name__)


def _search_columns():
    full_name = func.coalesce(User.first_name, "") + " " + func.coalesce(User.last_name, "")
    return [full_name, User.email]


async def list_users(db: AsyncSession, state: TableState) -> tuple[list[User], int]:
    stmt = select(User).where(User.archived_at.is_(None))
    return await apply_and_count(db, stmt, User, state, _search_columns())


async def set_status(db: AsyncSession, user_id: uuid.UUID, status_id: uuid.UUID) -> User:
    user = await get_user(db, user_id)
    status = await db.get(StatusAccount, status_id)
    if status is None or status.archived_at is not None:
        raise NotFound("Status not found")

    async with unit_of_work(db):
        user.status_id = status.id
        if status.id == settings.STATUS_BANNED:
            await revoke_refresh_token(db, user.id)
    logger.info("User %s moved to status %s", user.email, status.name)
    return await get_user(db, user.id)


async def set_roles(db: AsyncSession, user_id: uuid.UUID, names: list[str]) -> User:
    """Replace the user's roles with the named ones."""
    user = await get_user(db, user_id)
    wanted = {n.strip().upper() for n in names if n.strip()}
    result = await db.execute(
        select(Role).where(Role.normalized_name.in_(wanted), Role.archived_at.is_(None))
    )
    roles = list(result.scalars().all())
    missing = wanted - {r.normalized_name for r in roles}
    if missing:
        raise ValidationFailed(f"Unknown role(s): {', '.join(sorted(missing))}")

    async with unit_of_work(db):
        user.roles = roles
    logger.info("User %s roles set to %s", user.email, sorted(r.name for r in roles))
    return await get_user(db, user.id)


async def archive_user(db: AsyncSession, user_id: uuid.UUID) -> None:
    user = await get_user(db, user_id)
    async with unit_of_work(db):
        user.archived_at = utcnow()
        await revoke_refresh_token(db, user.id)
    logger.info("User archived: %s", user.email)
