"""
Password hashing and token helper tests.
"""

import uuid
from datetime import timedelta

from jose import jwt

from booking_backend.core.config import settings
from booking_backend.core.security import (EMAIL_CONFIRMATION, PASSWORD_RESET,
                                           create_access_token,
                                           create_purpose_token,
                                           decode_access_token,
                                           generate_refresh_token,
                                           get_password_hash,
                                           verify_password,
                                           verify_purpose_token)


def test_password_hash_roundtrip():
    hashed = get_password_hash("Passw0rd!")
    assert hashed != "Passw0rd!"
    assert verify_password("Passw0rd!", hashed)
    assert not verify_password("passw0rd!", hashed)


def test_access_token_claims():
    user_id = uuid.uuid4()
    token = create_access_token(user_id, "alice@example.com", "alice@example.com", ["Student", "Teacher"])
    payload = decode_access_token(token)

    assert payload is not None
    assert payload["sub"] == str(user_id)
    assert payload["email"] == "alice@example.com"
    assert payload["role"] == ["Student", "Teacher"]
    assert payload["iss"] == settings.API_BACK_URL
    assert payload["aud"] == settings.API_BACK_URL
    assert payload["exp"] - payload["iat"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60


def test_access_token_rejected_when_expired_or_foreign():
    user_id = uuid.uuid4()
    expired = create_access_token(user_id, "a", "a@x.io", [], expires_delta=timedelta(seconds=-5))
    assert decode_access_token(expired) is None

    forged = jwt.encode(
        {"sub": str(user_id), "type": "access", "iss": settings.API_BACK_URL, "aud": settings.API_BACK_URL},
        "some-other-secret",
        algorithm="HS256",
    )
    assert decode_access_token(forged) is None

    wrong_audience = jwt.encode(
        {"sub": str(user_id), "type": "access", "iss": settings.API_BACK_URL, "aud": "http://elsewhere"},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    assert decode_access_token(wrong_audience) is None


def test_purpose_token_bound_to_user_purpose_and_stamp():
    user_id = uuid.uuid4()
    token = create_purpose_token(user_id, EMAIL_CONFIRMATION, "stamp-1")

    assert verify_purpose_token(token, user_id, EMAIL_CONFIRMATION, "stamp-1")
    assert not verify_purpose_token(token, user_id, PASSWORD_RESET, "stamp-1")
    assert not verify_purpose_token(token, uuid.uuid4(), EMAIL_CONFIRMATION, "stamp-1")
    assert not verify_purpose_token(token, user_id, EMAIL_CONFIRMATION, "stamp-2")
    assert not verify_purpose_token("garbage", user_id, EMAIL_CONFIRMATION, "stamp-1")


def test_refresh_tokens_are_opaque_and_unique():
    tokens = {generate_refresh_token() for _ in range(50)}
    assert len(tokens) == 50
    assert all(len(t) >= 48 for t in tokens)
