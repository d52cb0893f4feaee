"""
Error Handlers
Map catalogdb exceptions to HTTP responses for FastAPI.
"""

import logging
from typing import Dict, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..errors import (
    CatalogDBError,
    ConcurrentModificationError,
    ConnectionAcquisitionError,
    InvalidQuantityError,
    NotFoundError,
    QueryTimeoutError,
    UniqueConstraintError,
)

logger = logging.getLogger(__name__)

# Checked in order; the first matching base wins
STATUS_CODES: Dict[Type[CatalogDBError], int] = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    UniqueConstraintError: status.HTTP_409_CONFLICT,
    ConcurrentModificationError: status.HTTP_409_CONFLICT,
    QueryTimeoutError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ConnectionAcquisitionError: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvalidQuantityError: status.HTTP_400_BAD_REQUEST,
}


def status_for(exc: CatalogDBError) -> int:
    for error_type, code in STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_body(message: str, error_type: str, details=None) -> dict:
    body = {"message": message, "type": error_type}
    if details is not None:
        body["details"] = details
    return {"error": body}


def setup_error_handlers(app: FastAPI) -> None:
    """
    Set up catalogdb error handlers for a FastAPI app.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(CatalogDBError)
    async def catalogdb_error_handler(request: Request, exc: CatalogDBError):
        """Handle catalogdb errors."""
        status_code = status_for(exc)

        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                f"Database error: {exc.message}",
                exc_info=exc,
                extra={"details": exc.details, "path": request.url.path},
            )
            if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
                return JSONResponse(
                    status_code=status_code,
                    content=_error_body("An unexpected error occurred", "InternalServerError"),
                )
        else:
            logger.warning(
                f"Request error: {exc.message}",
                extra={
                    "status_code": status_code,
                    "details": exc.details,
                    "path": request.url.path,
                },
            )

        headers = {"Retry-After": "1"} if exc.retriable else None
        return JSONResponse(
            status_code=status_code,
            content=_error_body(exc.message, exc.__class__.__name__, exc.details),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors."""
        logger.warning(f"Validation error: {exc}", extra={"path": request.url.path})

        errors = [
            {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": error.get("type", ""),
            }
            for error in exc.errors()
        ]

        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body("Request validation failed", "ValidationError", errors),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        """Handle value errors."""
        logger.warning(f"Value error: {exc}", extra={"path": request.url.path})

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(str(exc), "ValueError"),
        )
