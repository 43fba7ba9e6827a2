"""
Idempotent startup seeding — fixed-id lookup rows and the super admin.

Safe to run on every boot: rows are inserted when missing and renamed
back to their canonical values when they drifted.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.config import settings
from booking_backend.core.security import get_password_hash, new_security_stamp
from booking_backend.db.session import unit_of_work
from booking_backend.models import Gender, Role, StatusAccount, User

logger = logging.getLogger(__name__)

SUPER_ADMIN = "SuperAdmin"
ADMIN = "Admin"
TEACHER = "Teacher"
STUDENT = "Student"


def _roles() -> list[tuple[uuid.UUID, str]]:
    return [
        (settings.ROLE_SUPER_ADMIN, SUPER_ADMIN),
        (settings.ROLE_ADMIN, ADMIN),
        (settings.ROLE_TEACHER, TEACHER),
        (settings.ROLE_STUDENT, STUDENT),
    ]


def _genders() -> list[tuple[uuid.UUID, str, str]]:
    return [
        (settings.GENDER_FEMALE, "Female", "#ff69b4"),
        (settings.GENDER_MALE, "Male", "#fa69b4"),
        (settings.GENDER_OTHER, "Other", "#ab69b4"),
    ]


def _statuses() -> list[tuple[uuid.UUID, str, str]]:
    return [
        (settings.STATUS_PENDING, "Pending", "#ff69b4"),
        (settings.STATUS_CONFIRMED, "Confirmed", "#fa69b4"),
        (settings.STATUS_BANNED, "Banned", "#ab69b4"),
    ]


async def _upsert_roles(db: AsyncSession) -> None:
    for role_id, name in _roles():
        role = await db.get(Role, role_id)
        if role is None:
            db.add(Role(id=role_id, name=name, normalized_name=name.upper()))
            logger.info("Seeded role %s", name)
        elif role.name != name:
            role.name = name
            role.normalized_name = name.upper()


async def _upsert_lookup(db: AsyncSession, model, rows) -> None:
    for row_id, name, color in rows:
        item = await db.get(model, row_id)
        if item is None:
            db.add(model(id=row_id, name=name, color=color, icon=""))
            logger.info("Seeded %s %s", model.__tablename__, name)
        elif item.name != name:
            item.name = name


async def _ensure_super_admin(db: AsyncSession) -> None:
    email = settings.SUPER_ADMIN_EMAIL.strip().lower()
    result = await db.execute(
        select(User).where(User.email == email, User.archived_at.is_(None))
    )
    if result.scalar_one_or_none() is not None:
        return

    role = await db.get(Role, settings.ROLE_SUPER_ADMIN)
    db.add(
        User(
            email=email,
            username=email,
            hashed_password=get_password_hash(settings.SUPER_ADMIN_PASSWORD),
            first_name="Super",
            last_name="Admin",
            email_confirmed=True,
            accept_terms=True,
            security_stamp=new_security_stamp(),
            status_id=settings.STATUS_CONFIRMED,
            gender_id=settings.GENDER_OTHER,
            roles=[role] if role is not None else [],
        )
    )
    logger.info("Default super admin created: %s (password: <redacted>)", email)


async def seed_database(db: AsyncSession) -> None:
    async with unit_of_work(db):
        await _upsert_roles(db)
        await _upsert_lookup(db, Gender, _genders())
        await _upsert_lookup(db, StatusAccount, _statuses())
        await db.flush()
        await _ensure_super_admin(db)
