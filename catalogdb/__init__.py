"""
catalogdb
Resource filtering, search ranking, pagination and change-detection
persistence for the event rental catalog.
"""

__version__ = "0.1.0"
