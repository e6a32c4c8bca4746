"""Exception handlers: every error, domain or framework, leaves as JSON."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rankedwork.progression.errors import (
    InvalidTransition,
    PersistenceError,
    ProgressionError,
    ValidationError,
)

logger = structlog.get_logger()

# Checked in order; first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[ProgressionError], int], ...] = (
    (ValidationError, 422),
    (InvalidTransition, 409),
    (PersistenceError, 503),
)


def status_for(exc: ProgressionError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 400


def setup_error_handlers(app: FastAPI) -> None:
    """Register the handlers on ``app``."""

    @app.exception_handler(ProgressionError)
    async def progression_error_handler(request: Request, exc: ProgressionError) -> JSONResponse:
        status = status_for(exc)
        if isinstance(exc, PersistenceError):
            logger.warning("store_unavailable", path=request.url.path, operation=exc.operation, error=str(exc.cause))
            detail = "Progression store unavailable"
        else:
            detail = str(exc)
        return JSONResponse(status_code=status, content={"detail": detail, "kind": exc.kind})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "kind": "request_validation", "errors": exc.errors()},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
