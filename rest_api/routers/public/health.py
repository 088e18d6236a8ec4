"""
Health check endpoints for the REST API.
"""

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rest_api.routers._common import failure, ok
from shared.config.settings import settings
from shared.config.logging import rest_api_logger as logger
from shared.infrastructure.db import SessionLocal
from shared.utils.exceptions import ErrorKind


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return ok({
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    })


@router.get("/health/detailed")
def detailed_health_check():
    """
    Health check that verifies database connectivity.

    Returns 503 Service Unavailable if the database is down.
    """
    database = {"type": settings.database_url.split(":", 1)[0], "status": "healthy"}
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed", error=str(exc))
        database["status"] = "unhealthy"

    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "dependencies": {"database": database},
    }
    if database["status"] != "healthy":
        body = failure("Base de datos no disponible", ErrorKind.INTERNAL.value)
        body["data"] = checks
        return JSONResponse(content=body, status_code=503)
    return ok(checks)
