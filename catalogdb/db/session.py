"""
Database Session
Engine construction and the unit of work every engine operation runs in.
"""

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, exc as sa_exc, text
from sqlalchemy.engine import Connection, Engine

from ..config import Settings, get_settings
from ..errors import CatalogDBError, ConnectionAcquisitionError
from .errors import translate_error

logger = logging.getLogger(__name__)


def create_db_engine(settings: Optional[Settings] = None) -> Engine:
    """
    Create the SQLAlchemy engine from settings.

    Args:
        settings: Settings to use (defaults to global settings)

    Returns:
        Engine with a bounded connection pool
    """
    settings = settings or get_settings()

    options = {"echo": settings.db_echo, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
        )

    return create_engine(settings.database_url, **options)


class Database:
    """
    Unit of work over a pooled engine.

    Each ``session()`` acquires one connection, runs everything inside one
    transaction and releases the connection on every exit path.
    """

    def __init__(self, engine: Engine, settings: Optional[Settings] = None):
        """
        Initialize database wrapper.

        Args:
            engine: SQLAlchemy engine (owns the connection pool)
            settings: Settings for timeouts and slow query logging
        """
        self.engine = engine
        self.settings = settings or get_settings()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "Database":
        settings = settings or get_settings()
        return cls(create_db_engine(settings), settings)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def _acquire(self, resource: str, operation: str) -> Connection:
        try:
            return self.engine.connect()
        except (sa_exc.TimeoutError, sa_exc.OperationalError, sa_exc.InterfaceError) as e:
            logger.error(
                f"Connection acquisition failed for {operation} on {resource}: {type(e).__name__}",
                extra={"resource": resource, "operation": operation},
            )
            raise ConnectionAcquisitionError(resource, operation) from e

    def _apply_timeout(self, conn: Connection, timeout_ms: Optional[int]) -> None:
        # SET LOCAL semantics: the timeout ends with the transaction
        if timeout_ms and conn.dialect.name == "postgresql":
            conn.execute(
                text("SELECT set_config('statement_timeout', :timeout, true)"),
                {"timeout": f"{int(timeout_ms)}ms"},
            )

    @contextmanager
    def session(
        self,
        resource: str,
        operation: str,
        timeout_ms: Optional[int] = None,
    ) -> Iterator[Connection]:
        """
        Run a block inside one transaction on one pooled connection.

        Commits when the block returns, rolls back when it raises. Driver
        errors are translated into catalogdb errors.

        Args:
            resource: Resource name used in logs and errors
            operation: Operation name used in logs and errors
            timeout_ms: Statement timeout for the transaction

        Yields:
            Connection with an open transaction
        """
        conn = self._acquire(resource, operation)
        start_time = time.perf_counter()
        try:
            with conn.begin():
                self._apply_timeout(conn, timeout_ms)
                yield conn
        except CatalogDBError:
            raise
        except sa_exc.StatementError as e:
            raise translate_error(e, resource, operation) from e
        finally:
            conn.close()
            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms > self.settings.slow_query_ms:
                logger.warning(
                    f"Slow {operation} on {resource}: {duration_ms:.1f}ms",
                    extra={
                        "resource": resource,
                        "operation": operation,
                        "duration_ms": duration_ms,
                    },
                )
            else:
                logger.debug(f"{operation} on {resource} took {duration_ms:.1f}ms")

    def read(self, resource: str, operation: str = "get"):
        """Session for single-row lookups (short timeout)."""
        return self.session(resource, operation, self.settings.read_timeout_ms)

    def filter(self, resource: str, operation: str = "filter"):
        """Session for count + page queries."""
        return self.session(resource, operation, self.settings.filter_timeout_ms)

    def write(self, resource: str, operation: str):
        """Session for multi-statement writes (long timeout)."""
        return self.session(resource, operation, self.settings.write_timeout_ms)

    def dispose(self) -> None:
        self.engine.dispose()
