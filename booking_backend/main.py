"""
Booking backend — application entry point.

This is the **only** file that assembles the app.  All business logic
lives in the `services/`, `api/`, `models/`, and `core/` packages.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Ensure all models are imported so metadata.create_all can see them
import booking_backend.models  # noqa: F401
from booking_backend.api.api import api_router
from booking_backend.api.endpoints.auth import limiter
from booking_backend.core.config import settings
from booking_backend.core.exceptions import (envelope_response,
                                             register_exception_handlers)
from booking_backend.db.base import Base
from booking_backend.db.seed import seed_database
from booking_backend.db.session import async_session_factory, engine

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialised")

    # Fixed-id roles, genders, statuses and the super admin
    async with async_session_factory() as session:
        await seed_database(session)
    logger.info("Seed data verified")

    logger.info("%s v%s started", settings.PROJECT_NAME, settings.VERSION)
    yield
    await engine.dispose()
    logger.info("Shutdown complete")


# ── App factory ─────────────────────────────────────────────────────
def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.PROJECT_NAME,
        description="Teacher slots, student bookings and orders",
        version=settings.VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.middleware("http")
    async def request_timeout(request: Request, call_next):
        try:
            return await asyncio.wait_for(
                call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.warning("Request timed out: %s %s", request.method, request.url.path)
            return envelope_response(504, "Request timed out")

    # Rate limiting (login, refresh, forgot-password)
    application.state.limiter = limiter

    # Global exception handlers (uniform envelope, no stack-trace leakage)
    register_exception_handlers(application)

    application.include_router(api_router)

    return application


app = create_app()
