"""
Infrastructure package for fraudwatch.

Centralizes database connectivity concerns (pooling, retry policy). Keep this
layer focused on I/O and resource management, decoupled from query planning
and dashboard logic.
"""

from fraudwatch.infrastructure.db_factory import (
    TRANSIENT_DB_ERRORS,
    PoolManager,
    build_dsn,
    db_retry,
)

__all__ = [
    "PoolManager",
    "TRANSIENT_DB_ERRORS",
    "build_dsn",
    "db_retry",
]
