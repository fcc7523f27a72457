"""
FastAPI application entry point for the club backend.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from runclub.config import get_settings
from runclub.errors import (
    ClubError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from runclub.routes import router

logger = logging.getLogger(__name__)


def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400, content={"detail": exc.message, "field": exc.field}
    )


def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(
        "Storage error during %s %s: %s (%s)",
        request.method,
        request.url.path,
        exc.message,
        exc.code,
    )
    return JSONResponse(
        status_code=503,
        content={"detail": exc.message, "code": exc.code, "operation": exc.operation},
    )


def _club_error(request: Request, exc: ClubError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = FastAPI(title="Running Club Backend (FastAPI)", version="0.1.0")
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(NotFoundError, _not_found)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(StorageError, _storage_error)
    app.add_exception_handler(ClubError, _club_error)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
