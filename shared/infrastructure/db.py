"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.
"""

import os
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.orm.exc import StaleDataError

from shared.config.settings import DATABASE_URL
from shared.utils.exceptions import (
    AppException,
    ConcurrentModificationError,
    ConflictError,
    DatabaseError,
)


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def _engine_options(url: str) -> dict[str, Any]:
    """Connection pool options per backend; SQLite has no server pool."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": _calculate_pool_size(),
        "max_overflow": 15,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "connect_args": {"connect_timeout": 10},
    }


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/documentos")
        def list_documents(db: Session = Depends(get_db)):
            ...

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI (CLI, seed).

    Usage:
        with get_db_context() as db:
            seed(db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


@contextmanager
def transaction(
    db: Session,
    operation: str,
    entity: str = "Registro",
    entity_id: int | None = None,
) -> Generator[Session, None, None]:
    """
    Unit of work: commit when the block succeeds, roll back on any error.

    Store failures are re-raised as DatabaseError and stale optimistic
    versions as ConcurrentModificationError; application errors propagate
    unchanged.

    Usage:
        with transaction(db, "derivar documento", "Documento", doc_id):
            document.current_area_id = destination
            ledger.append(...)
    """
    try:
        yield db
        db.commit()
    except AppException:
        db.rollback()
        raise
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrentModificationError(entity, entity_id, operation=operation) from exc
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            f"{entity} viola una restricción de integridad durante {operation}",
            operation=operation,
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise DatabaseError(operation, error=str(exc)) from exc
    except Exception:
        db.rollback()
        raise
