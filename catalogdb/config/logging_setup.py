"""
Logging Setup
Process-wide logging format shared by every catalogdb module.
"""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure root logging.

    Args:
        level: Log level name; defaults to the LOG_LEVEL setting
    """
    if level is None:
        from .settings import get_settings

        level = get_settings().log_level

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    logging.getLogger("catalogdb").setLevel(level.upper())
