"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pulse_sync import __version__
from pulse_sync.api.routes import admin, collection, health, records, sync
from pulse_sync.config import settings
from pulse_sync.domain.errors import (
    DeadlineExceeded,
    LeaseUnavailable,
    RetentionConflict,
    StoreUnavailable,
)
from pulse_sync.logging import get_logger, setup_logging

# Setup logging
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info("application_starting", version=__version__, timezone=settings.day_key_timezone)

    # Startup: verify database connection
    try:
        from pulse_sync.db.session import init_db

        init_db()
        logger.info("database_connected")
    except Exception as e:
        logger.error("database_connection_failed", error=str(e))
        # Don't raise - let health checks report the issue

    yield

    # Shutdown
    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Pulse Sync",
    description="Reconciliation and sync engine for date-partitioned video metadata",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error mapping


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable) -> JSONResponse:
    logger.error("store_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Record store unavailable; nothing was committed", "error": "store_unavailable"},
    )


@app.exception_handler(DeadlineExceeded)
async def deadline_exceeded_handler(request: Request, exc: DeadlineExceeded) -> JSONResponse:
    logger.warning("deadline_exceeded", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        content={"detail": str(exc), "error": "deadline_exceeded"},
    )


@app.exception_handler(RetentionConflict)
async def retention_conflict_handler(request: Request, exc: RetentionConflict) -> JSONResponse:
    logger.error("retention_conflict", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "error": "retention_conflict"},
    )


@app.exception_handler(LeaseUnavailable)
async def lease_unavailable_handler(request: Request, exc: LeaseUnavailable) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_423_LOCKED,
        content={"detail": str(exc), "error": "lease_unavailable", "holder": exc.holder},
    )


# Register routers
app.include_router(health.router)
app.include_router(records.router, prefix="/api/v1")
app.include_router(sync.router, prefix="/api/v1")
app.include_router(collection.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint redirect to docs."""
    return {
        "name": "Pulse Sync",
        "version": __version__,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "pulse_sync.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
