# src/mediagate/main.py
"""Main entry point for the Media Gate application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from mediagate.api.v1 import content_router, identity_router, reactions_router, unlocks_router
from mediagate.core.logging import configure_logging
from mediagate.core.settings import settings
from mediagate.services.errors import (
    BatchTooLargeError,
    ConflictError,
    MediaGateError,
    NotFoundError,
    TransientStoreError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first: BatchTooLargeError is also a ValidationError.
ERROR_STATUS: tuple[tuple[type[MediaGateError], int], ...] = (
    (BatchTooLargeError, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (TransientStoreError, status.HTTP_503_SERVICE_UNAVAILABLE),
)

# Initialize FastAPI app
app = FastAPI(
    title="Media Gate API",
    description="Media reactions and tiered access gating",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(reactions_router, prefix="/api/v1")
app.include_router(content_router, prefix="/api/v1")
app.include_router(unlocks_router, prefix="/api/v1")
app.include_router(identity_router, prefix="/api/v1")


def status_for_error(exc: MediaGateError) -> int:
    """Return the HTTP status a domain error maps to."""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(MediaGateError)
async def handle_domain_error(request: Request, exc: MediaGateError) -> JSONResponse:
    status_code = status_for_error(exc)
    headers = {"Retry-After": "1"} if isinstance(exc, TransientStoreError) else None
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=headers)


@app.on_event("startup")
async def on_startup() -> None:
    configure_logging()
    logger.info("%s %s starting", settings.app_name, settings.app_version)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Media Gate API",
        "version": settings.app_version,
        "description": "Media reactions and tiered access gating",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("mediagate.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
