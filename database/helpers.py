"""
Database helper functions shared by the account store and session manager.

"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import PersistenceFailed

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def upsert_insert(session: AsyncSession, model):
    """
    Return a dialect-specific ``INSERT`` supporting ``on_conflict_do_update``.

    Both PostgreSQL and SQLite implement ``INSERT … ON CONFLICT``, which
    keeps concurrent upserts for the same key atomic.
    """
    if session.get_bind().dialect.name == "sqlite":
        return sqlite_insert(model)
    return pg_insert(model)


@asynccontextmanager
async def persistence_guard(operation: str) -> AsyncIterator[None]:
    """Translate storage errors into ``PersistenceFailed``."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("%s failed: %s", operation, exc.__class__.__name__)
        raise PersistenceFailed(detail=operation) from exc
