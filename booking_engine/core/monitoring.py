"""Health checks and monitoring endpoints"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_engine.config.database import get_db

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("")
def health_check(request: Request):
    """Basic health check"""
    return {"status": "healthy", "service": request.app.title}


@health_router.get("/detailed")
def detailed_health_check(request: Request, db: Session = Depends(get_db)):
    """Detailed health check with dependencies"""
    checks = {
        "api": "healthy",
        "database": "unknown",
        "redis": "disabled",
        "overall": "unknown"
    }

    try:
        db.execute(text("SELECT 1"))
        db.rollback()
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        checks["database"] = f"unhealthy: {e}"

    cache = getattr(request.app.state, "calendar_cache", None)
    if cache is not None:
        checks["redis"] = "healthy" if cache.ping() else "unhealthy"

    if all(status in ("healthy", "disabled") for key, status in checks.items() if key != "overall"):
        checks["overall"] = "healthy"
    else:
        checks["overall"] = "degraded"

    return checks
