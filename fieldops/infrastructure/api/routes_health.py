"""Liveness and database reachability."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fieldops.adapters.persistence.database import get_session
from fieldops.config import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    database = "connected"
    try:
        await session.scalar(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database unreachable from health check: %s", e)
        database = f"error: {e}"

    return {
        "status": "ok" if database == "connected" else "degraded",
        "database": database,
        "business_timezone": settings.business_timezone,
    }
