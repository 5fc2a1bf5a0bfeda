"""Translate database exceptions into StoreError kinds.

Callers above the persistence layer only ever see StoreError.kind; nobody
inspects driver message text.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from src.smm_common.enums import StoreErrorKind
from src.smm_common.errors import StoreError

_PERMISSION_SQLSTATES = {"42501"}          # insufficient_privilege
_CONFLICT_SQLSTATES = {"40001", "40P01"}   # serialization_failure, deadlock_detected
_UNAVAILABLE_SQLSTATES = {"57P01", "57P02", "57P03", "08000", "08003", "08006"}


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def translate_db_error(exc: BaseException) -> StoreError:
    if isinstance(exc, (OSError, PoolTimeoutError)):
        return StoreError(StoreErrorKind.NETWORK_UNAVAILABLE, f"Database unreachable: {exc}")
    if isinstance(exc, DBAPIError):
        state = _sqlstate(exc)
        if state in _PERMISSION_SQLSTATES:
            return StoreError(StoreErrorKind.PERMISSION_DENIED, "Database permission denied")
        if state in _CONFLICT_SQLSTATES or isinstance(exc, IntegrityError):
            return StoreError(StoreErrorKind.CONFLICT, f"Write conflict: {exc.orig}")
        if (
            state in _UNAVAILABLE_SQLSTATES
            or exc.connection_invalidated
            or isinstance(exc, (OperationalError, InterfaceError))
        ):
            return StoreError(StoreErrorKind.NETWORK_UNAVAILABLE, f"Database unavailable: {exc.orig}")
    return StoreError(StoreErrorKind.INTERNAL, f"Database error: {exc}")


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[None]:
    """One unit of work: commit on success, roll back and re-raise on failure.

    Database errors are re-raised as StoreError; domain errors pass through.
    A connection lost during COMMIT leaves the outcome unknown, and the
    resulting StoreError says so.
    """
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        await db.rollback()
        raise translate_db_error(exc) from exc
    except Exception:
        await db.rollback()
        raise
    try:
        await db.commit()
    except (SQLAlchemyError, OSError) as exc:
        await db.rollback()
        error = translate_db_error(exc)
        error.outcome_unknown = error.kind is StoreErrorKind.NETWORK_UNAVAILABLE
        raise error from exc


@asynccontextmanager
async def reading() -> AsyncIterator[None]:
    """Translate database errors raised by read-only calls."""
    try:
        yield
    except (SQLAlchemyError, OSError) as exc:
        raise translate_db_error(exc) from exc
