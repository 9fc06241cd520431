"""
FastAPI Application Entry Point.

This is the main application file for the TrackChain Custody Service.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from trackchain.app.core.config import settings
from trackchain.app.api.v1.router import router as api_router
from trackchain.app.db.session import engine, init_models, register_models
from trackchain.app.core.observability import ObservabilityMiddleware, configure_logging
from trackchain.app.core import redis_client as redis_module
from trackchain.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

configure_logging(settings.log_level)
register_models()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates missing tables on startup; closes Redis and the engine pool on
    shutdown.
    """
    await init_models()
    yield
    await redis_module.close_redis()
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    description="Custody tracking for pharmaceutical shipments",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Reports "degraded" when the revocation store is unreachable; requests
    are still served since revocation checks fail open.
    """
    redis_ok = await redis_module.ping_redis()
    return {
        "status": "healthy" if redis_ok else "degraded",
        "redis": "up" if redis_ok else "down",
        "app_name": settings.app_name,
        "version": settings.app_version,
    }


app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the TrackChain Custody Service API",
        "docs": "/docs",
        "health": "/health",
    }
