"""
Utilities package for fraudwatch.

Exports shared helpers for logging and record ordering.
Keep this package lightweight and free of collection-specific logic.
"""

from fraudwatch.utils.logging import configure_logging, get_logger
from fraudwatch.utils.ordering import sort_key, sort_records

__all__ = [
    "configure_logging",
    "get_logger",
    "sort_key",
    "sort_records",
]
