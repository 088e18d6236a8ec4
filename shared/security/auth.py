"""
Authentication utilities.

Tokens are HS256 JWTs issued by the office identity service (or by the
``token`` CLI command in development). ``sub`` is the user ID; role, area
and mask are always read from the database, never trusted from the token.
"""

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt
from fastapi import Header

from shared.config.settings import (
    JWT_SECRET,
    JWT_ISSUER,
    JWT_AUDIENCE,
    settings,
)
from shared.config.logging import audit_auth_event, get_logger
from shared.utils.exceptions import UnauthenticatedError

logger = get_logger(__name__)


# =============================================================================
# JWT Functions
# =============================================================================


def sign_jwt(payload: dict[str, Any], ttl_seconds: int | None = None) -> str:
    """
    Sign a JWT token with the given payload.

    Args:
        payload: Claims to include in the token (sub, cip, ...).
        ttl_seconds: Token lifetime in seconds. Defaults to the access token expiry.

    Returns:
        Signed JWT token string.
    """
    if ttl_seconds is None:
        ttl_seconds = settings.jwt_access_token_expire_minutes * 60

    now = int(time.time())
    data = {
        **payload,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "iat": now,
        "exp": now + ttl_seconds,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(data, JWT_SECRET, algorithm="HS256")


def sign_user_token(user_id: int, cip: str | None = None, ttl_seconds: int | None = None) -> str:
    """Access token for a user."""
    payload: dict[str, Any] = {"sub": str(user_id)}
    if cip:
        payload["cip"] = cip
    return sign_jwt(payload, ttl_seconds=ttl_seconds)


def verify_jwt(token: str) -> dict[str, Any]:
    """
    Verify and decode a JWT token.

    Returns:
        Decoded token claims.

    Raises:
        UnauthenticatedError: If token is invalid, expired or lacks a valid subject.
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET,
            algorithms=["HS256"],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError:
        audit_auth_event("TOKEN_EXPIRED", success=False, reason="expired")
        raise UnauthenticatedError("El token ha expirado")
    except jwt.InvalidTokenError as e:
        # Generic message to the client, detail only in logs
        audit_auth_event("TOKEN_INVALID", success=False, reason=str(e))
        raise UnauthenticatedError("Token inválido")

    if "sub" not in payload:
        raise UnauthenticatedError("Token inválido: falta el sujeto")

    try:
        int(payload["sub"])
    except (ValueError, TypeError):
        raise UnauthenticatedError("Token inválido: sujeto mal formado")

    return payload


def get_bearer_token(authorization: str | None) -> str:
    """
    Extract bearer token from Authorization header.

    Raises:
        UnauthenticatedError: If header is missing or malformed.
    """
    if not authorization:
        raise UnauthenticatedError("Falta el encabezado Authorization")
    if not authorization.startswith("Bearer "):
        raise UnauthenticatedError("Formato de Authorization inválido. Se espera: Bearer <token>")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise UnauthenticatedError("Falta el token")
    return token


def current_user_context(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> dict[str, Any]:
    """
    FastAPI dependency returning the verified token claims.

    Usage:
        def protected_endpoint(ctx = Depends(current_user_context)):
            user_id = int(ctx["sub"])
    """
    token = get_bearer_token(authorization)
    return verify_jwt(token)
