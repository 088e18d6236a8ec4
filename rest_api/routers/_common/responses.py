"""
Response envelope helpers.

Every endpoint answers ``{success, data?, message?, error?}``; errors are
rendered by the exception handlers in rest_api.core.errors.
"""

from typing import Any

from fastapi.encoders import jsonable_encoder


def ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    """Successful envelope."""
    body: dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    return body


def failure(message: str, error: str) -> dict[str, Any]:
    """Error envelope; ``error`` is the ErrorKind tag."""
    return {"success": False, "message": message, "error": error}
