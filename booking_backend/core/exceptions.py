"""
Application error taxonomy and global exception handlers.

Every failure leaves the API in the same envelope shape as a success:
``{"status", "message", "data", "count"}``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException

from booking_backend.core.config import settings

logger = logging.getLogger(__name__)


# ── Taxonomy ────────────────────────────────────────────────────────
class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None, data: Any = None) -> None:
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation failed"


class ConflictError(AppError):
    status_code = 400
    default_message = "Conflict with existing data"


class DuplicateEmail(ConflictError):
    default_message = "Email is already in use"


class AuthFailure(AppError):
    status_code = 401
    default_message = "Could not validate credentials"


class Forbidden(AppError):
    status_code = 403
    default_message = "Insufficient privileges"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class UnexpectedError(AppError):
    status_code = 500


class MailDeliveryError(UnexpectedError):
    default_message = "Email could not be sent"


def error_detail(exc: Exception, fallback: str) -> str:
    """Driver / exception text when details are exposed, else *fallback*."""
    if not settings.EXPOSE_ERROR_DETAILS:
        return fallback
    orig = getattr(exc, "orig", None)
    return str(orig or exc) or fallback


def envelope_response(
    status_code: int,
    message: str,
    data: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(
            {"status": status_code, "message": message, "data": data, "count": None}
        ),
        headers=headers,
    )


# ── Handlers ────────────────────────────────────────────────────────
async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unexpected application error: %s", exc.message)
    return envelope_response(exc.status_code, exc.message, exc.data)


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return envelope_response(exc.status_code, str(exc.detail), headers=exc.headers)


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    return envelope_response(400, "Invalid request data", exc.errors())


async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return envelope_response(429, f"Too many requests: {exc.detail}")


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return envelope_response(400, error_detail(exc, "Database constraint violation"))


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return envelope_response(500, error_detail(exc, "Internal database error"))


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return envelope_response(500, error_detail(exc, "Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
