"""CORS for the browser front end."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rankedwork.config import Settings


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured UI origins, including the identity header."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-Id", settings.user_id_header],
        expose_headers=["X-Request-Id", "Content-Disposition"],
    )
