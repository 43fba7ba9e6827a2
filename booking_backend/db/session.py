"""
Async SQLAlchemy engine, session factory and unit-of-work helper.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from booking_backend.core.config import settings
from booking_backend.core.exceptions import ConflictError, UnexpectedError, error_detail

logger = logging.getLogger(__name__)

engine_args: dict = {
    "echo": False,
    "pool_pre_ping": True,
}

if "postgresql" in settings.DATABASE_URL:
    engine_args.update(
        {
            "pool_size": 20,
            "max_overflow": 10,
            "pool_recycle": 300,
            "connect_args": {"command_timeout": settings.DB_COMMAND_TIMEOUT_SECONDS},
        }
    )

engine = create_async_engine(
    settings.DATABASE_URL,
    **engine_args,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or roll all of it back.

    Constraint violations surface as ``ConflictError``; any other store
    failure as ``UnexpectedError`` carrying the driver message.
    """
    try:
        yield db
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Constraint violation, transaction rolled back: %s", exc.orig)
        raise ConflictError(error_detail(exc, "Database constraint violation")) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Store failure, transaction rolled back: %s", exc, exc_info=True)
        raise UnexpectedError(error_detail(exc, "Internal database error")) from exc
    except BaseException:
        await db.rollback()
        raise
