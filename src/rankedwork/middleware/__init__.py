"""Middleware registration."""

from fastapi import FastAPI

from rankedwork.config import Settings
from rankedwork.middleware.cors import setup_cors
from rankedwork.middleware.error_handler import setup_error_handlers
from rankedwork.middleware.logging import setup_logging
from rankedwork.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and middleware.

    Starlette runs middleware in reverse-add order, so CORS (added last)
    is outermost and also wraps error responses.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
