"""
FastAPI Application Entry Point.

This is the main application file for the Transit Tracking Service.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tracking_service.app.core.config import settings
from tracking_service.app.api.v1.router import router as api_v1_router
from tracking_service.app.core.observability import ObservabilityMiddleware, configure_logging
from tracking_service.app.core.redis_client import get_redis, ping_redis
from tracking_service.app.db.session import engine, Base, get_db, AsyncSessionLocal
from tracking_service.app.services.retention import RetentionWorker
from tracking_service.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from tracking_service.app.models.position_report import PositionReport
from tracking_service.app.models.catalog import VehicleRecord, RouteRecord

retention_worker = RetentionWorker(AsyncSessionLocal, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Runs the retention worker until shutdown.
    """
    configure_logging(settings.log_level)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    retention_worker.start()
    yield
    await retention_worker.stop()
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Real-time transit vehicle tracking and geospatial queries",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db), redis=Depends(get_redis)):
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and backing service reachability
    """
    try:
        await db.execute(text("SELECT 1"))
        database_ok = True
    except SQLAlchemyError:
        database_ok = False

    redis_ok = await ping_redis(redis)

    return {
        "status": "healthy" if database_ok and redis_ok else "degraded",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "database": "up" if database_ok else "down",
        "redis": "up" if redis_ok else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Transit Tracking Service API",
        "docs": "/docs",
        "health": "/health",
    }
