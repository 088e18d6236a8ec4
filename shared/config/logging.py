"""
Centralized structured logging for the backend.
Uses Python's standard logging with JSON formatting for production.

Every record carries the correlation ID of the request that produced it and,
once the caller is authenticated, the actor ID.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs logs in a format easily parseable by log aggregation tools.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            log_data["request_id"] = request_id

        actor_id = getattr(record, "actor_id", None)
        if actor_id and actor_id != "-":
            log_data["actor_id"] = actor_id

        if hasattr(record, "extra_data") and record.extra_data:
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            request_id_str = f"{self.DIM}[{request_id[:8]}]{self.RESET} "
        else:
            request_id_str = ""

        message = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{request_id_str}{record.name}: {record.getMessage()}"
        )

        if hasattr(record, "extra_data") and record.extra_data:
            data_str = " | ".join(f"{k}={v}" for k, v in record.extra_data.items())
            message += f" ({data_str})"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class StructuredLogger(logging.Logger):
    """
    Custom logger that supports structured data.

    Keyword arguments passed to the level methods are attached to the record
    as ``extra_data`` instead of being interpolated into the message.
    """

    def _log_with_data(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        **kwargs: Any,
    ) -> None:
        """Log with optional structured data."""
        if not self.isEnabledFor(level):
            return
        if extra is None:
            extra = {}
        extra["extra_data"] = kwargs if kwargs else None
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        exc_info = kwargs.pop("exc_info", None)
        self._log_with_data(logging.ERROR, msg, args, exc_info=exc_info, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        exc_info = kwargs.pop("exc_info", None)
        self._log_with_data(logging.CRITICAL, msg, args, exc_info=exc_info, **kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Configure logging for the application.
    Call this once at application startup.
    """
    # Imported here to avoid a circular import (correlation logs through us)
    from shared.infrastructure.correlation import CorrelationIdFilter

    log_level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())

    if settings.environment == "production":
        formatter = StructuredFormatter()
    else:
        formatter = DevelopmentFormatter()

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Documento derivado", document_id=12, area_destino=4)
        logger.error("Fallo al registrar", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore


def mask_cip(cip: str | None) -> str:
    """
    Mask a CIP personnel code for logging.

    Shows only the last 3 characters: "12345678" -> "*****678".
    """
    if not cip:
        return "<no-cip>"
    if len(cip) <= 3:
        return "*" * len(cip)
    return "*" * (len(cip) - 3) + cip[-3:]


# Pre-configured loggers for common modules
rest_api_logger = get_logger("rest_api")
workflow_logger = get_logger("rest_api.workflow")
permissions_logger = get_logger("rest_api.permissions")

# Dedicated security audit logger
security_audit_logger = get_logger("security.audit")


# =============================================================================
# Security Audit Logging Functions
# =============================================================================


def audit_access_decision(
    allowed: bool,
    reason: str,
    endpoint: str | None,
    actor_id: int | None,
    required_bit: int,
    actor_mask: int,
    rule_id: int | None = None,
    evaluated_rule_ids: list[int] | None = None,
    resource_type: str | None = None,
    resource_id: int | None = None,
    **extra: Any,
) -> None:
    """
    Log the outcome of an authorization decision.

    Denials are logged at WARNING so they can be alerted on; grants at INFO.

    Args:
        allowed: Final decision.
        reason: Decision reason code (AdminBypass, MissingBit, ...).
        endpoint: Endpoint or operation that requested the decision.
        actor_id: Requesting user ID.
        required_bit: Permission bit index that was required.
        actor_mask: Effective mask of the actor at decision time.
        rule_id: Contextual rule that matched, if any.
        evaluated_rule_ids: Every contextual rule consulted.
        resource_type: DOCUMENTO, USUARIO, AREA or GLOBAL.
        resource_id: Target resource ID, if resource-scoped.
        **extra: Additional context data
    """
    log_level = logging.INFO if allowed else logging.WARNING
    event_type = "ACCESS_GRANTED" if allowed else "ACCESO_NO_AUTORIZADO"

    security_audit_logger._log_with_data(
        log_level,
        f"PERMISSION_AUDIT: {event_type}",
        args=(),
        event_type=event_type,
        reason=reason,
        endpoint=endpoint,
        actor_id=actor_id,
        required_bit=required_bit,
        actor_mask=actor_mask,
        rule_id=rule_id,
        evaluated_rule_ids=evaluated_rule_ids or None,
        resource_type=resource_type,
        resource_id=resource_id,
        **extra,
    )


def audit_document_event(
    event_type: str,
    document_id: int | None,
    actor_id: int | None,
    **extra: Any,
) -> None:
    """
    Log a document lifecycle security event.

    Args:
        event_type: DOCUMENT_CREATED, DOCUMENT_UPDATED, DOCUMENT_STATUS_CHANGE,
            DOCUMENT_DERIVED, DOCUMENT_DELETED, DOCUMENT_RESTORED,
            DOCUMENT_PURGED or DOCUMENT_ACCESS.
        document_id: Document affected.
        actor_id: User who performed the operation.
        **extra: Additional context data
    """
    security_audit_logger.info(
        f"DOCUMENT_AUDIT: {event_type}",
        event_type=event_type,
        document_id=document_id,
        actor_id=actor_id,
        **extra,
    )


def audit_auth_event(
    event_type: str,
    user_id: int | str | None = None,
    success: bool = True,
    reason: str | None = None,
    **extra: Any,
) -> None:
    """
    Log authentication security events (token failures, unknown users).

    Args:
        event_type: TOKEN_INVALID, TOKEN_EXPIRED, USER_INACTIVE, ...
        user_id: User ID (if known)
        success: Whether the operation succeeded
        reason: Reason for failure (if applicable)
        **extra: Additional context data
    """
    log_level = logging.INFO if success else logging.WARNING

    security_audit_logger._log_with_data(
        log_level,
        f"AUTH_AUDIT: {event_type}",
        args=(),
        event_type=event_type,
        user_id=user_id,
        success=success,
        reason=reason,
        **extra,
    )
