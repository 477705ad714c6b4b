"""
FastAPI application for the booking engine

Availability and booking for customers, appointment and calendar management
for businesses
"""
import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_engine.api.v1.router import api_v1_router
from booking_engine.config.database import Database
from booking_engine.config.redis import create_redis_client
from booking_engine.config.settings import get_settings
from booking_engine.core.middleware import correlation_id_middleware, request_logging_middleware
from booking_engine.core.monitoring import health_router
from booking_engine.services.calendar.calendar_cache import CalendarCache
from booking_engine.services.events.event_publisher import EventPublisher, build_event_publisher
from booking_engine.services.gates.quota_gate import AllowAllQuotaGate, QuotaGate
from booking_engine.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


def create_app(
        database: Optional[Database] = None,
        calendar_cache: Optional[CalendarCache] = None,
        event_publisher: Optional[EventPublisher] = None,
        quota_gate: Optional[QuotaGate] = None,
        clock: Optional[Callable] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Collaborators passed in are used as-is and left open at shutdown; anything
    missing is built from settings in the lifespan and disposed there.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        setup_logging()
        owned_database = database is None
        redis_client = None

        app.state.database = database or Database.from_settings(settings)
        app.state.calendar_cache = calendar_cache
        if calendar_cache is None and settings.CALENDAR_CACHE_ENABLED:
            redis_client = create_redis_client(settings)
            app.state.calendar_cache = CalendarCache(redis_client, settings.CALENDAR_CACHE_TTL_SECONDS)
        app.state.event_publisher = event_publisher or build_event_publisher(settings)
        app.state.quota_gate = quota_gate or AllowAllQuotaGate()
        app.state.clock = clock

        logger.info(f"{settings.APP_NAME} starting up (database: {app.state.database.dialect_name})")

        yield

        # Shutdown
        logger.info(f"{settings.APP_NAME} shutting down")
        if redis_client is not None:
            redis_client.close()
        if owned_database:
            app.state.database.dispose()

    app = FastAPI(
        title=settings.APP_NAME,
        description="Appointment availability and booking conflict engine",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "PUT"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "api": "/api/v1",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "booking_engine.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
