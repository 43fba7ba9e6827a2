"""
Declarative base and the lifecycle columns shared by every primary entity.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Uuid, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    """UUID key, creation / update stamps and soft-delete marker."""

    # Mixin columns stay unannotated: declarative copies them onto each model.
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=utcnow,
    )
    archived_at = Column(DateTime(timezone=True), nullable=True)


class LookupMixin(TimestampMixin):
    """Soft-archivable option row: name, display color and icon."""

    name = Column(String(64), nullable=False)
    color = Column(String(16), nullable=False, default="#000000")
    icon = Column(String(256), nullable=True)
