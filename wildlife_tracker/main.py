"""
FastAPI Backend for the Wildlife Sighting Tracker

Map clients report animal sightings here and read back the ones that are
still active. Sightings expire an hour (by default) after their last
"still here" refresh and are swept by a background task.

Run with:
    python -m wildlife_tracker.main
    uvicorn wildlife_tracker.main:app
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wildlife_tracker import __version__
from wildlife_tracker.config import Settings
from wildlife_tracker.context import AppContext
from wildlife_tracker.database.connection import check_connection
from wildlife_tracker.exceptions import (
    MediaUploadError,
    SightingNotFound,
    SightingValidationError,
    StoreUnavailable,
)
from wildlife_tracker.models import HealthResponse
from wildlife_tracker.routers import sightings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Application settings (read from the environment if omitted)
        context: Pre-built AppContext (tests); built from settings at startup otherwise

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = context.settings if context is not None else Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.context = context if context is not None else AppContext.create(settings)
        await app.state.context.startup()
        try:
            yield
        finally:
            await app.state.context.shutdown()

    app = FastAPI(
        title="Wildlife Sighting API",
        description="API for reporting and mapping short-lived animal sightings",
        version=__version__,
        docs_url="/api/docs",  # Swagger UI
        redoc_url="/api/redoc",  # ReDoc
        lifespan=lifespan,
    )

    # ========================================================================
    # CORS Configuration - Allow the map client to call the API
    # ========================================================================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========================================================================
    # Error Handlers - map domain errors to HTTP status codes
    # ========================================================================

    @app.exception_handler(SightingValidationError)
    async def validation_error_handler(request: Request, exc: SightingValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(SightingNotFound)
    async def not_found_handler(request: Request, exc: SightingNotFound):
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Database unavailable"},
        )

    @app.exception_handler(MediaUploadError)
    async def media_upload_error_handler(request: Request, exc: MediaUploadError):
        logger.error(f"Error uploading image: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Error uploading image"},
        )

    # ========================================================================
    # Include Routers
    # ========================================================================

    app.include_router(sightings.router, prefix="/api/sightings", tags=["Sightings"])
    app.include_router(sightings.ws_router, tags=["Sightings"])

    # ========================================================================
    # Health Check Endpoint
    # ========================================================================

    @app.get("/health", response_model=HealthResponse)
    @app.get("/api/health", response_model=HealthResponse, include_in_schema=False)
    async def health_check(request: Request):
        """Check if the API is running and the database is reachable"""
        try:
            await asyncio.to_thread(check_connection, request.app.state.context.engine)
            database = "connected"
        except StoreUnavailable:
            database = "unavailable"
        return {
            "status": "ok" if database == "connected" else "degraded",
            "database": database,
            "version": __version__,
        }

    @app.get("/")
    async def root():
        """Root endpoint - links to docs"""
        return {
            "message": "Wildlife Sighting API",
            "docs": "/api/docs",
            "health": "/health"
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point: configure logging and serve with uvicorn."""
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format='%(levelname)s: %(message)s'
    )
    uvicorn.run(
        "wildlife_tracker.main:app",
        host=settings.host,
        port=settings.port,
        timeout_graceful_shutdown=30,  # Drain in-flight requests on SIGTERM
    )


if __name__ == "__main__":
    run()
