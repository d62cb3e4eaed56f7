"""Health check endpoints."""

import asyncio
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_dispatcher
from infrastructure.config import get_settings
from infrastructure.database import get_db
from services.publish_queue import PublicationDispatcher

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """Health check with database connectivity."""
    try:
        result = await asyncio.wait_for(db.execute(text("SELECT 1")), timeout=5.0)
        result.scalar()
        db_status = "connected"
    except TimeoutError:
        logger.error("Health check DB timeout")
        db_status = "error: database timeout"
    except Exception as e:
        logger.error("Health check DB error: %s", str(e))
        db_status = "error: database check failed"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "app": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "database": db_status,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health/scheduler")
async def health_check_scheduler(
    request: Request,
    dispatcher: PublicationDispatcher = Depends(get_dispatcher),
):
    """Due-item scanner and publication dispatcher state."""
    scanner = getattr(request.app.state, "scanner", None)
    scanner_stats = scanner.stats() if scanner is not None else {"running": False}

    return {
        "status": "healthy" if scanner_stats["running"] or not settings.scheduler_enabled else "degraded",
        "scanner": scanner_stats,
        "publications": dispatcher.stats(),
        "timestamp": datetime.now(UTC).isoformat(),
    }
