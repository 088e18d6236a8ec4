"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from rest_api.core import (
    configure_cors,
    lifespan,
    register_exception_handlers,
    register_middlewares,
)
from rest_api.routers.public import health_router
from rest_api.routers.documents import router as documents_router
from rest_api.routers.permissions import router as permissions_router
from shared.config.settings import settings


# Create FastAPI application
app = FastAPI(
    title="Expedientes REST API",
    description="Document workflow and permission management API",
    version="0.1.0",
    lifespan=lifespan,
)

register_middlewares(app)
configure_cors(app)
register_exception_handlers(app)


# =============================================================================
# Routers
# =============================================================================

app.include_router(health_router)
app.include_router(documents_router)
app.include_router(permissions_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.debug,
    )
