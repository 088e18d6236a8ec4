"""
Exception handlers.
Render every error in the response envelope, with the ErrorKind tag in ``error``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rest_api.routers._common import failure
from shared.config.logging import rest_api_logger as logger
from shared.utils.exceptions import AppException, ErrorKind


# Kinds for HTTP errors raised by the framework itself (unknown route, bad method)
STATUS_KINDS = {
    401: ErrorKind.UNAUTHENTICATED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    405: ErrorKind.VALIDATION,
    409: ErrorKind.CONFLICT,
    415: ErrorKind.VALIDATION,
    422: ErrorKind.VALIDATION,
}


def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Application errors carry their own kind; already logged on creation."""
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(str(exc.detail), exc.kind.value),
        headers=exc.headers,
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kind = STATUS_KINDS.get(exc.status_code, ErrorKind.INTERNAL)
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(str(exc.detail), kind.value),
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query validation: 422 with the offending fields."""
    fields = sorted({".".join(str(p) for p in err["loc"] if p != "body") for err in exc.errors()})
    logger.info("Request validation failed", path=request.url.path, fields=fields)
    return JSONResponse(
        status_code=422,
        content=failure(f"Datos de entrada inválidos: {', '.join(fields)}", ErrorKind.VALIDATION.value),
    )


def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content=failure("Error interno del servidor", ErrorKind.INTERNAL.value),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
