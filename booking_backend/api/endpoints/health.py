"""
Liveness probe.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_backend.api.deps import get_db
from booking_backend.core.config import settings
from booking_backend.schemas.common import HealthResponse, ResponseEnvelope, envelope

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=ResponseEnvelope[HealthResponse])
async def health(db: AsyncSession = Depends(get_db)):
    """Public health check: database connectivity."""
    result = HealthResponse(status="ok", db=False, version=settings.VERSION)
    try:
        await db.execute(select(1))
        result.db = True
    except SQLAlchemyError as e:
        logger.error("Health check DB failure: %s", e)
        result.status = "degraded"
    return envelope(result, "Service is up" if result.db else "Database unreachable")
