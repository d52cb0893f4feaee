"""
Errors
Exception hierarchy shared by the query engine, aggregates and cart.
"""

from typing import Any, Optional, Union
from uuid import UUID


class CatalogDBError(Exception):
    """Base exception for catalogdb errors."""

    retriable: bool = False

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConnectionAcquisitionError(CatalogDBError):
    """Raised when no pooled connection could be obtained."""

    def __init__(self, resource: str, operation: str):
        super().__init__(
            message=f"Could not acquire a database connection for {operation} on {resource}",
            details={"resource": resource, "operation": operation},
        )


class QueryExecutionError(CatalogDBError):
    """
    Raised when a statement fails.

    The message never includes statement text; the original driver error is
    chained as ``__cause__`` for logging.
    """

    def __init__(self, resource: str, operation: str, message: Optional[str] = None):
        super().__init__(
            message=message or f"Failed to {operation} {resource}",
            details={"resource": resource, "operation": operation},
        )
        self.resource = resource
        self.operation = operation


class QueryTimeoutError(QueryExecutionError):
    """Raised when a statement exceeds its timeout. Safe to retry."""

    retriable = True

    def __init__(self, resource: str, operation: str):
        super().__init__(
            resource,
            operation,
            message=f"Timed out while trying to {operation} {resource}",
        )


class UniqueConstraintError(QueryExecutionError):
    """Raised when a write collides with an existing unique value."""

    def __init__(self, resource: str, operation: str, constraint: Optional[str] = None):
        super().__init__(
            resource,
            operation,
            message=f"A {resource} with the same name already exists",
        )
        self.constraint = constraint
        if constraint:
            self.details["constraint"] = constraint


class NotFoundError(CatalogDBError):
    """Raised when a single-entity lookup finds nothing."""

    def __init__(self, resource: str, resource_id: Union[UUID, int, str]):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            details={"resource": resource, "id": str(resource_id)},
        )
        self.resource = resource
        self.resource_id = resource_id


class ConcurrentModificationError(CatalogDBError):
    """Raised when an aggregate changed since the caller read it."""

    def __init__(self, resource: str, resource_id: Any, expected: int, actual: Optional[int]):
        super().__init__(
            message=f"{resource} {resource_id} was modified by another request",
            details={
                "resource": resource,
                "id": str(resource_id),
                "expected_version": expected,
                "actual_version": actual,
            },
        )


class InvalidQuantityError(CatalogDBError, ValueError):
    """Raised when a cart line is given a non-positive quantity."""

    def __init__(self, product_id: Any, quantity: int):
        super().__init__(
            message=f"Quantity must be positive, got {quantity}",
            details={"product_id": str(product_id), "quantity": quantity},
        )


class UnknownResourceError(KeyError):
    """Raised when the engine is asked for a resource it has no descriptor for."""
