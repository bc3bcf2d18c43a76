"""
FastAPI Main Application

Entry point for the FetchNews scheduling backend.
Following official FastAPI documentation:
https://fastapi.tiangolo.com/
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from fetchnews.api import admin_router, scheduler_router, topic_cache_router
from fetchnews.config.logging import get_logger, setup_logging
from fetchnews.config.settings import settings
from fetchnews.db import close_db, get_db_context
from fetchnews.scheduler import background_scheduler
from fetchnews.services.runtime_settings import RuntimeSettings

# Setup logging
setup_logging(settings)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Handles startup and shutdown events:
    - Load runtime settings once
    - Start the in-process housekeeping scheduler
    - Cleanup on shutdown
    """
    logger.info(
        "Starting FetchNews backend",
        environment=settings.app_env,
        debug=settings.debug,
    )

    # Load the global settings row once per process
    runtime_settings = RuntimeSettings()
    try:
        async with get_db_context() as db:
            await runtime_settings.load(db)
        app.state.runtime_settings = runtime_settings
        logger.info("Runtime settings loaded")
    except Exception as e:
        logger.warning("Failed to load runtime settings", error=str(e))

    if settings.enable_background_scheduler:
        background_scheduler.start()

    yield

    logger.info("Shutting down FetchNews backend")

    background_scheduler.stop()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title="FetchNews Backend",
    description="""
    Scheduled news summaries with shared topic caching.

    ## Features
    - **Idempotent scheduling**: each user's summary runs at most once per day
    - **Crash recovery**: stalled runs are detected and retried automatically
    - **Topic cache**: summaries are generated once per topic and shared

    ## Authentication
    Admin endpoints require the `X-Admin-Token` header when `ADMIN_TOKEN` is set.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# Exception handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "An unexpected error occurred. Please try again later.",
            "error_code": "INTERNAL_ERROR",
        },
    )


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check() -> dict:
    """
    Health check endpoint.

    Returns system status and basic metrics.
    """
    return {
        "status": "healthy",
        "environment": settings.app_env,
        "version": "1.0.0",
        "scheduler_running": background_scheduler.is_running,
    }


# API v1 routers
app.include_router(admin_router, prefix="/api/v1")
app.include_router(scheduler_router, prefix="/api/v1")
app.include_router(topic_cache_router, prefix="/api/v1")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fetchnews.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
