"""
Account lifecycle tests — registration, confirmation, login, refresh,
password reset and logout.
"""

import re
from datetime import datetime, timedelta, timezone
from urllib.parse import unquote

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.core.config import settings
from booking_backend.core.exceptions import MailDeliveryError
from booking_backend.core.security import decode_access_token
from booking_backend.models import RefreshToken, User
from booking_backend.services.mail import MailService
from tests.conftest import PASSWORD, bearer

ALICE = {
    "email": "Alice@Example.com",
    "password": "Passw0rd!",
    "first_name": "Alice",
    "last_name": "Liddell",
    "accept_terms": True,
}


def _confirmation_params(html: str) -> dict[str, str]:
    user_id = re.search(r"userId=([0-9a-f-]{36})", html).group(1)
    token = re.search(r"confirmationToken=([^\"&\s]+)", html).group(1)
    return {"userId": user_id, "confirmationToken": unquote(token)}


async def _login(client: AsyncClient, email: str, password: str = PASSWORD):
    return await client.post("/auth/login", json={"email": email, "password": password})


async def _refresh_rows(db: AsyncSession, email: str) -> list[RefreshToken]:
    result = await db.execute(
        select(RefreshToken).join(User, User.id == RefreshToken.user_id).where(User.email == email)
    )
    return list(result.scalars().all())


# ── Full scenario ───────────────────────────────────────────────────
async def test_register_confirm_login_refresh(async_client: AsyncClient, outbox):
    r = await async_client.post("/auth/register", json=ALICE)
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == 201
    assert body["data"]["email"] == "alice@example.com"
    assert body["data"]["status"]["name"] == "Pending"
    assert body["data"]["roles"] == ["Student"]
    assert body["data"]["email_confirmed"] is False
    assert "hashed_password" not in body["data"]

    assert len(outbox) == 1
    assert outbox[0].to == "alice@example.com"
    assert f"{settings.API_BACK_URL}/auth/email-confirmation?userId=" in outbox[0].html

    params = _confirmation_params(outbox[0].html)
    r = await async_client.get("/auth/email-confirmation", params=params)
    assert r.status_code == 200
    assert r.json()["message"] == f"{settings.API_FRONT_URL}/auth/email-confirmation-success"
    assert r.json()["data"]["status"]["name"] == "Confirmed"
    assert r.json()["data"]["email_confirmed"] is True

    # Single use: the stamp rotated on confirmation
    r = await async_client.get("/auth/email-confirmation", params=params)
    assert r.status_code == 400

    r = await _login(async_client, "alice@example.com", "Passw0rd!")
    assert r.status_code == 200
    session = r.json()["data"]
    payload = decode_access_token(session["token"])
    assert payload["exp"] - payload["iat"] == 30 * 60
    assert payload["role"] == ["Student"]

    cookie = r.headers["set-cookie"]
    assert f"refreshToken={session['refresh_token']}" in cookie
    assert "httponly" in cookie.lower()
    assert "samesite=strict" in cookie.lower()
    assert "max-age=604800" in cookie.lower()

    r = await async_client.post(
        "/auth/refresh-token", headers={"Cookie": f"refreshToken={session['refresh_token']}"}
    )
    assert r.status_code == 200
    refreshed = r.json()["data"]
    assert refreshed["refresh_token"] == session["refresh_token"]
    assert decode_access_token(refreshed["token"])["email"] == "alice@example.com"

    r = await async_client.post(
        "/auth/refresh-token", json={"refresh_token": session["refresh_token"]}
    )
    assert r.status_code == 200


async def test_duplicate_email_rejected(async_client: AsyncClient, db_session: AsyncSession, outbox):
    assert (await async_client.post("/auth/register", json=ALICE)).status_code == 201

    r = await async_client.post("/auth/register", json={**ALICE, "email": "alice@EXAMPLE.com "})
    assert r.status_code == 400
    assert r.json()["message"] == "Email is already in use"

    total = await db_session.scalar(
        select(func.count()).select_from(User).where(User.email == "alice@example.com")
    )
    assert total == 1


async def test_register_rejects_weak_password(async_client: AsyncClient):
    r = await async_client.post("/auth/register", json={**ALICE, "password": "short"})
    assert r.status_code == 400
    assert r.json()["message"] == "Invalid request data"


# ── Mail policy ─────────────────────────────────────────────────────
async def _failing_send(self, to, subject, html):
    raise MailDeliveryError("relay refused")


async def test_best_effort_registration_survives_mail_failure(
    async_client: AsyncClient, db_session: AsyncSession, monkeypatch
):
    monkeypatch.setattr(MailService, "send_email", _failing_send)

    r = await async_client.post("/auth/register", json=ALICE)
    assert r.status_code == 201
    assert "could not be sent" in r.json()["message"]
    assert await db_session.scalar(select(func.count()).select_from(User).where(User.email == "alice@example.com")) == 1


async def test_strict_registration_rolls_back_on_mail_failure(
    async_client: AsyncClient, db_session: AsyncSession, monkeypatch
):
    monkeypatch.setattr(MailService, "send_email", _failing_send)
    monkeypatch.setattr(settings, "REGISTRATION_MAIL_POLICY", "strict")

    r = await async_client.post("/auth/register", json=ALICE)
    assert r.status_code == 500
    assert r.json()["message"] == "relay refused"
    assert await db_session.scalar(select(func.count()).select_from(User).where(User.email == "alice@example.com")) == 0


# ── Login & refresh ─────────────────────────────────────────────────
async def test_login_rotates_single_refresh_row(
    async_client: AsyncClient, db_session: AsyncSession, student
):
    first = (await _login(async_client, student.email)).json()["data"]["refresh_token"]
    second = (await _login(async_client, student.email)).json()["data"]["refresh_token"]
    assert first != second

    rows = await _refresh_rows(db_session, student.email)
    assert len(rows) == 1
    assert rows[0].token == second

    r = await async_client.post("/auth/refresh-token", json={"refresh_token": first})
    assert r.status_code == 401


async def test_login_failures(async_client: AsyncClient, student):
    r = await _login(async_client, "nobody@example.com")
    assert r.status_code == 404
    r = await _login(async_client, student.email, "WrongPass1")
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid credentials"


async def test_banned_account_cannot_sign_in(async_client: AsyncClient, make_user):
    banned = await make_user("banned@example.com", status_id=settings.STATUS_BANNED)
    r = await _login(async_client, banned.email)
    assert r.status_code == 401

    r = await async_client.get("/auth/me", headers=bearer(banned))
    assert r.status_code == 401


async def test_refresh_rejects_missing_and_expired_tokens(
    async_client: AsyncClient, db_session: AsyncSession, student
):
    r = await async_client.post("/auth/refresh-token")
    assert r.status_code == 401
    assert r.json()["message"] == "Refresh token missing"

    token = (await _login(async_client, student.email)).json()["data"]["refresh_token"]
    row = (await _refresh_rows(db_session, student.email))[0]
    row.expiration_date = datetime.now(timezone.utc) - timedelta(minutes=1)
    await db_session.commit()

    r = await async_client.post("/auth/refresh-token", json={"refresh_token": token})
    assert r.status_code == 401


# ── Password reset ──────────────────────────────────────────────────
async def test_forgot_and_reset_password(
    async_client: AsyncClient, db_session: AsyncSession, student, outbox
):
    old_refresh = (await _login(async_client, student.email)).json()["data"]["refresh_token"]

    r = await async_client.post("/auth/forgot-password", json={"email": student.email})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["email"] == student.email
    assert data["id"] == str(student.id)
    assert len(outbox) == 1
    assert f"{settings.API_FRONT_URL}/auth/reset-password?userId={student.id}" in outbox[0].html

    reset = {"user_id": data["id"], "reset_token": data["reset_token"], "password": "N3wPassword"}
    r = await async_client.post("/auth/reset-password", json=reset)
    assert r.status_code == 200

    # Token is single use and sessions issued before the reset are gone
    assert (await async_client.post("/auth/reset-password", json=reset)).status_code == 400
    r = await async_client.post("/auth/refresh-token", json={"refresh_token": old_refresh})
    assert r.status_code == 401
    assert len(await _refresh_rows(db_session, student.email)) == 1

    assert (await _login(async_client, student.email)).status_code == 401
    assert (await _login(async_client, student.email, "N3wPassword")).status_code == 200


async def test_forgot_password_unknown_email_is_generic(async_client: AsyncClient, outbox):
    r = await async_client.post("/auth/forgot-password", json={"email": "ghost@example.com"})
    assert r.status_code == 400
    assert r.json()["message"] == "Unable to process the password reset request"
    assert outbox == []


async def test_reset_password_unknown_user(async_client: AsyncClient):
    r = await async_client.post(
        "/auth/reset-password",
        json={
            "user_id": "00000000-0000-0000-0000-000000000001",
            "reset_token": "x",
            "password": "N3wPassword",
        },
    )
    assert r.status_code == 404


# ── Profile & logout ────────────────────────────────────────────────
async def test_me_update_and_logout(async_client: AsyncClient, db_session: AsyncSession, student):
    headers = bearer(student)

    r = await async_client.get("/auth/me", headers=headers)
    assert r.status_code == 200
    assert r.json()["data"]["email"] == student.email

    r = await async_client.put(
        "/auth/update",
        json={"title": "Piano student", "gender_id": str(settings.GENDER_FEMALE)},
        headers=headers,
    )
    assert r.status_code == 200
    assert r.json()["data"]["title"] == "Piano student"
    assert r.json()["data"]["gender"]["name"] == "Female"
    assert r.json()["data"]["first_name"] == "Sam"

    await _login(async_client, student.email)
    assert len(await _refresh_rows(db_session, student.email)) == 1
    r = await async_client.post("/auth/logout", headers=headers)
    assert r.status_code == 200
    assert await _refresh_rows(db_session, student.email) == []


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-jwt"}])
async def test_protected_routes_need_a_valid_token(async_client: AsyncClient, headers):
    r = await async_client.get("/auth/me", headers=headers)
    assert r.status_code == 401
    assert set(r.json()) == {"status", "message", "data", "count"}
