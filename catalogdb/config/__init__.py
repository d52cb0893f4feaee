"""
Configuration
Settings and logging setup.
"""

from .settings import Settings, get_settings, reset_settings
from .logging_setup import configure_logging

__all__ = ["Settings", "get_settings", "reset_settings", "configure_logging"]
