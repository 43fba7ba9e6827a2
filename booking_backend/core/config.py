"""
Centralised application settings loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

import json
import uuid

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

_INSECURE_SECRET = "CHANGE-ME-TO-A-RANDOM-64-CHAR-HEX-STRING-IN-PRODUCTION"


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "Booking Backend"
    VERSION: str = "1.0.0"

    # ── Database (async PostgreSQL via asyncpg) ─────────────────────
    # Left empty, DATABASE_URL is composed from the DB_* parts below.
    DATABASE_URL: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "mainDB"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_COMMAND_TIMEOUT_SECONDS: float = 30.0

    # ── JWT ──────────────────────────────────────────────────────────
    SECRET_KEY: str = _INSECURE_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    EMAIL_TOKEN_EXPIRE_HOURS: int = 1
    COOKIE_SECURE: bool = True

    # ── Public URLs ──────────────────────────────────────────────────
    API_BACK_URL: str = "http://localhost:8000"
    API_FRONT_URL: str = "http://localhost:4200"

    # ── CORS ─────────────────────────────────────────────────────────
    CORS_ORIGINS: list[str] = [
        "http://localhost:4200",
        "http://127.0.0.1:4200",
    ]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        if isinstance(v, str):
            if v.lstrip().startswith("["):
                return json.loads(v)
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    # ── Well-known lookup ids (seeded on startup) ───────────────────
    ROLE_SUPER_ADMIN: uuid.UUID = uuid.UUID("bde5556b-562d-431f-9ff9-d31a5f5cb8c5")
    ROLE_ADMIN: uuid.UUID = uuid.UUID("4a5eaf2f-0496-4035-a4b7-9210da39501c")
    ROLE_TEACHER: uuid.UUID = uuid.UUID("87a0a5ed-c7bb-4394-a163-7ed7560b3703")
    ROLE_STUDENT: uuid.UUID = uuid.UUID("87a0a5ed-c7bb-4394-a163-7ed7560b4a01")

    GENDER_MALE: uuid.UUID = uuid.UUID("bde5556b-562d-431f-9ff9-d31a5f5cb8c5")
    GENDER_FEMALE: uuid.UUID = uuid.UUID("4a5eaf2f-0496-4035-a4b7-9210da39501c")
    GENDER_OTHER: uuid.UUID = uuid.UUID("87a0a5ed-c7bb-4394-a163-7ed7560b3703")

    STATUS_PENDING: uuid.UUID = uuid.UUID("bde5556b-562d-431f-9ff9-d31a5f5cb8c5")
    STATUS_CONFIRMED: uuid.UUID = uuid.UUID("4a5eaf2f-0496-4035-a4b7-9210da39501c")
    STATUS_BANNED: uuid.UUID = uuid.UUID("87a0a5ed-c7bb-4394-a163-7ed7560b3703")

    # ── Default super admin (seeded on first startup) ───────────────
    SUPER_ADMIN_EMAIL: str = "super.admin@inspire.fr"
    SUPER_ADMIN_PASSWORD: str = "SuperPassword123!"

    # ── Mail ─────────────────────────────────────────────────────────
    MAIL_ENABLED: bool = True
    SMTP_HOST: str = "smtp.mailtrap.io"
    SMTP_PORT: int = 587
    SMTP_LOGIN: str = ""
    SMTP_KEY: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0
    DO_NOT_REPLY_MAIL: str = "do-not-reply@inspire.fr"
    # best_effort: keep the account when the confirmation mail fails
    # strict: roll the registration back instead
    REGISTRATION_MAIL_POLICY: str = "best_effort"

    @field_validator("REGISTRATION_MAIL_POLICY")
    @classmethod
    def _validate_mail_policy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in {"best_effort", "strict"}:
            raise ValueError("REGISTRATION_MAIL_POLICY must be 'best_effort' or 'strict'")
        return v

    # ── Hardening ────────────────────────────────────────────────────
    REQUEST_TIMEOUT_SECONDS: float = 60.0
    EXPOSE_ERROR_DETAILS: bool = True
    RATE_LIMIT_ENABLED: bool = True

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    @model_validator(mode="after")
    def _compose_database_url(self):
        if not self.DATABASE_URL.strip():
            self.DATABASE_URL = (
                f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            )
        return self

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()

if settings.SECRET_KEY == _INSECURE_SECRET:
    import logging

    logging.getLogger("booking_backend.core.config").warning(
        "You are running with the default INSECURE secret key! "
        "Update SECRET_KEY in your .env file immediately."
    )
