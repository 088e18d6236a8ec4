"""
CORS configuration.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings


ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]
ALLOWED_HEADERS = ["Authorization", "Content-Type", "X-Request-ID"]


def get_cors_origins() -> list[str]:
    """Origins from ALLOWED_ORIGINS (comma-separated); none when unset."""
    return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]


def configure_cors(app: FastAPI) -> None:
    """Configure CORS from ALLOWED_ORIGINS; no credentials."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=["X-Request-ID"],
    )
