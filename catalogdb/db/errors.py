"""
Database Error Translation
Maps driver failures onto the catalogdb error hierarchy.
"""

import logging

from sqlalchemy import exc as sa_exc

from ..errors import (
    CatalogDBError,
    QueryExecutionError,
    QueryTimeoutError,
    UniqueConstraintError,
)

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
QUERY_CANCELED = "57014"
LOCK_NOT_AVAILABLE = "55P03"

_TIMEOUT_CODES = {QUERY_CANCELED, LOCK_NOT_AVAILABLE}


def _sqlstate(error: BaseException) -> str:
    """Read the SQLSTATE from psycopg2 (pgcode) or psycopg 3 (sqlstate) errors."""
    return getattr(error, "pgcode", None) or getattr(error, "sqlstate", None) or ""


def _constraint_name(error: BaseException):
    diag = getattr(error, "diag", None)
    return getattr(diag, "constraint_name", None)


def translate_error(exc: Exception, resource: str, operation: str) -> CatalogDBError:
    """
    Translate a SQLAlchemy error into a catalogdb error.

    Args:
        exc: Error raised while executing a statement
        resource: Resource the statement targeted
        operation: Operation name (filter, get, update, ...)

    Returns:
        CatalogDBError to raise in place of the driver error
    """
    if isinstance(exc, CatalogDBError):
        return exc

    orig = getattr(exc, "orig", None) or exc
    code = _sqlstate(orig)

    if isinstance(exc, sa_exc.IntegrityError):
        if code == UNIQUE_VIOLATION or "UNIQUE constraint failed" in str(orig):
            logger.info(
                f"Unique constraint violated during {operation} on {resource}",
                extra={"resource": resource, "operation": operation},
            )
            return UniqueConstraintError(resource, operation, constraint=_constraint_name(orig))

    if code in _TIMEOUT_CODES:
        logger.warning(
            f"Statement timeout during {operation} on {resource}",
            extra={"resource": resource, "operation": operation},
        )
        return QueryTimeoutError(resource, operation)

    logger.error(
        f"Query failed during {operation} on {resource}: {type(orig).__name__}",
        extra={"resource": resource, "operation": operation, "sqlstate": code or None},
    )
    return QueryExecutionError(resource, operation)
