"""Translation of engine failures into the public error taxonomy.

This is the single place where raw engine errors become public errors.
Engine detail is logged, never returned.
"""

import asyncio

from dalkit.domain.exceptions import DomainError

from .context import OperationContext
from .exceptions import (
    ConstraintViolationError,
    DatabaseError,
    DataAccessError,
    DuplicateRecordError,
    EngineError,
    InvalidReferenceError,
    NotFoundError,
    QueryTimeoutError,
)

# SQLSTATE codes
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"
QUERY_CANCELED = "57014"

_BY_SQLSTATE: dict[str, type[DatabaseError]] = {
    UNIQUE_VIOLATION: DuplicateRecordError,
    CHECK_VIOLATION: ConstraintViolationError,
    FOREIGN_KEY_VIOLATION: InvalidReferenceError,
    QUERY_CANCELED: QueryTimeoutError,
}


def sqlstate_of(error: BaseException) -> str | None:
    """Extract the structured error code an engine attached to ``error``."""
    for attribute in ("sqlstate", "pgcode"):
        value = getattr(error, attribute, None)
        if isinstance(value, str) and len(value) == 5:
            return value
    return None


def is_public(error: BaseException) -> bool:
    """Public errors already belong to the taxonomy and pass through unchanged."""
    return isinstance(error, DomainError) and not isinstance(error, EngineError)


def classify(error: BaseException) -> DataAccessError | DomainError | None:
    """Map an error to its public category.

    Returns:
        None for "no rows found", the error itself when it is already public,
        otherwise a fresh taxonomy error carrying no engine text
    """
    if isinstance(error, NotFoundError):
        return None
    if is_public(error):
        return error
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return QueryTimeoutError()

    error_class = _BY_SQLSTATE.get(sqlstate_of(error) or "", DatabaseError)
    return error_class()


def handle_database_error(
    ctx: OperationContext | None,
    logger,
    error: BaseException,
    step: str,
    message: str,
) -> DataAccessError | DomainError | None:
    """Log an engine failure with its step and classify it.

    Args:
        ctx: Call context, attached to the log line
        logger: StructuredLogger receiving the diagnostics
        error: The failure to classify
        step: Operation step name (e.g. "creating record")
        message: Human readable description of what failed

    Returns:
        The classified error, or None when the failure means "no rows found"
    """
    if isinstance(error, NotFoundError):
        return None
    if is_public(error):
        return error

    fields = {"error": str(error), "error_type": type(error).__name__}
    code = sqlstate_of(error)
    if code:
        fields["sqlstate"] = code
    logger.error(ctx, step, message, **fields)

    return classify(error)
