"""Translation of SQLAlchemy failures into the engine's error taxonomy."""

from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from sandtrack.core.exceptions import (
    ConflictError,
    SandtrackError,
    StoreUnavailableError,
)


def is_conflict(exc: BaseException) -> bool:
    """Check if exc was caused by a uniqueness rule or a lost version race."""
    return isinstance(exc, (IntegrityError, StaleDataError))


def translate_store_error(
    exc: SQLAlchemyError,
    message: str,
    **context: Any,
) -> SandtrackError:
    """
    Map a SQLAlchemy exception to ConflictError or StoreUnavailableError.

    Args:
        exc: Exception raised by the session or engine
        message: Description of the failed operation
        **context: Identifiers attached to the resulting error

    Returns:
        Error to raise from the original exception
    """
    if is_conflict(exc):
        return ConflictError(
            f"{message}: the records were changed by another operation",
            error_type=type(exc).__name__,
            **context,
        )
    return StoreUnavailableError(
        f"{message}: the entity store is unavailable",
        error_type=type(exc).__name__,
        **context,
    )
