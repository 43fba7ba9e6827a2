"""
Shared test fixtures for the booking backend test suite.

Every test gets a fresh in-memory SQLite database (aiosqlite + AsyncSession)
with the seed data loaded, an httpx client wired to the app, and an outbox
capturing rendered mails instead of talking to SMTP.
"""

import os
import sys
import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
# CORS fix (JSON format)
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["MAIL_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-with-enough-entropy-for-hs256-signing"

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from booking_backend.api.deps import get_db
from booking_backend.core.config import settings
from booking_backend.core.security import create_access_token, get_password_hash, new_security_stamp
from booking_backend.db.base import Base
from booking_backend.db.seed import ADMIN, STUDENT, TEACHER, seed_database
from booking_backend.main import app
from booking_backend.models import Role, TypeSlot, User
from booking_backend.services.mail import MailService

PASSWORD = "Passw0rd!"


@dataclass
class SentMail:
    to: str
    subject: str
    html: str


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema + seed data per test; the app's get_db points at it."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await seed_database(session)

    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield factory
    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def outbox(monkeypatch) -> list[SentMail]:
    """Capture every mail the app tries to send."""
    sent: list[SentMail] = []

    async def _capture(self, to: str, subject: str, html: str) -> None:
        sent.append(SentMail(to, subject, html))

    monkeypatch.setattr(MailService, "send_email", _capture)
    return sent


# ── Users & tokens ──────────────────────────────────────────────────
def bearer(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.username, user.email, user.role_names)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user(session_factory):
    """Insert a confirmed account holding *roles*; returns the User."""

    async def _make(
        email: str | None = None,
        roles: tuple[str, ...] = (STUDENT,),
        first_name: str = "Test",
        last_name: str = "User",
        status_id: uuid.UUID | None = None,
    ) -> User:
        email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
        async with session_factory() as session:
            result = await session.execute(
                select(Role).where(Role.normalized_name.in_([n.upper() for n in roles]))
            )
            role_rows = list(result.scalars().all())
            user = User(
                email=email,
                username=email,
                hashed_password=get_password_hash(PASSWORD),
                first_name=first_name,
                last_name=last_name,
                email_confirmed=True,
                accept_terms=True,
                security_stamp=new_security_stamp(),
                status_id=status_id or settings.STATUS_CONFIRMED,
                gender_id=settings.GENDER_OTHER,
                roles=role_rows,
            )
            session.add(user)
            await session.commit()
            return user

    return _make


@pytest.fixture
async def admin_headers(make_user) -> dict[str, str]:
    return bearer(await make_user("admin@example.com", roles=(ADMIN,)))


@pytest.fixture
async def teacher(make_user) -> User:
    return await make_user(
        "teacher@example.com", roles=(TEACHER,), first_name="Tina", last_name="Teach"
    )


@pytest.fixture
async def student(make_user) -> User:
    return await make_user(
        "student@example.com", roles=(STUDENT,), first_name="Sam", last_name="Study"
    )


@pytest.fixture
async def slot_type(session_factory) -> TypeSlot:
    async with session_factory() as session:
        item = TypeSlot(name="Lesson", color="#00aaff", icon="pi pi-book")
        session.add(item)
        await session.commit()
        return item
