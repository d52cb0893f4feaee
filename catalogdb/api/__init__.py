"""
API
HTTP error mapping for applications built on catalogdb.
"""

from .errors import STATUS_CODES, setup_error_handlers, status_for

__all__ = ["STATUS_CODES", "setup_error_handlers", "status_for"]
