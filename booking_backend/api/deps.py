"""
FastAPI dependencies — database session, current user and role guards.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.exceptions import AuthFailure, Forbidden, NotFound
from booking_backend.core.security import decode_access_token
from booking_backend.db.seed import ADMIN, SUPER_ADMIN
from booking_backend.db.session import async_session_factory
from booking_backend.models.user import User
from booking_backend.services.auth import get_user, is_banned

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


# ── Database session ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


# ── Auth dependencies ───────────────────────────────────────────────
async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the bearer JWT and load its live, non-banned account."""
    if not token:
        raise AuthFailure("Not authenticated")

    payload = decode_access_token(token)
    if payload is None:
        raise AuthFailure("Invalid or expired access token")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthFailure() from None

    try:
        user = await get_user(db, user_id)
    except NotFound:
        raise AuthFailure("Account no longer exists") from None
    if is_banned(user):
        raise AuthFailure("This account has been banned")
    return user


def require_roles(*names: str):
    """Dependency factory letting through users holding any of *names*."""

    async def _guard(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*names):
            raise Forbidden(f"Requires one of the roles: {', '.join(names)}")
        return current_user

    return _guard


require_admin = require_roles(ADMIN, SUPER_ADMIN)
