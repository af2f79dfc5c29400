"""
Database connection factory utilities for the Postgres document backend.

Provides centralized management of the psycopg connection pool with proper
lifecycle management. The PoolManager singleton ensures resources are
properly cleaned up on application exit.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Optional

import psycopg
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fraudwatch.config import get_settings
from fraudwatch.utils.logging import get_logger

log = get_logger(__name__)

# Driver errors worth another attempt: dropped connections, server restarts.
TRANSIENT_DB_ERRORS = (psycopg.OperationalError, psycopg.InterfaceError)

db_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(TRANSIENT_DB_ERRORS),
    reraise=True,
)


class PoolManager:
    """
    Thread-safe singleton for managing the database connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pool: Optional[ConnectionPool] = None
                cls._instance._dsn: Optional[str] = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(self, dsn: Optional[str] = None, min_size: int = 1, max_size: int = 10) -> ConnectionPool:
        """
        Get or create the connection pool.

        Parameters
        ----------
        dsn : str, optional
            Connection string; defaults to the one built from settings.
        min_size : int
            Minimum number of idle connections to keep.
        max_size : int
            Maximum total connections in the pool.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        conninfo = dsn or build_dsn()
        with self._lock:
            if self._pool is not None and self._dsn != conninfo:
                self._close_pool()
            if self._pool is None:
                log.debug("Opening connection pool", extra={"max_size": max_size})
                self._pool = ConnectionPool(
                    conninfo=conninfo, min_size=min_size, max_size=max_size, open=True
                )
                self._dsn = conninfo
            return self._pool

    def _close_pool(self) -> None:
        if self._pool is None:
            return
        try:
            self._pool.close()
        except psycopg.Error as exc:
            log.warning("Error while closing connection pool", extra={"error": str(exc)})
        finally:
            self._pool = None
            self._dsn = None

    def close_all(self) -> None:
        """
        Close the managed pool and release resources.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            self._close_pool()


def build_dsn() -> str:
    """Compose a DSN string from settings."""
    return get_settings().dsn


__all__ = [
    "PoolManager",
    "TRANSIENT_DB_ERRORS",
    "build_dsn",
    "db_retry",
]
