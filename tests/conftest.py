"""
Pytest configuration for fraudwatch.

Provides fixtures for:
- Settings with test-specific overrides
- In-memory document stores and the data-access facade on top of them
- Postgres connectivity for integration tests (skipped when unreachable)
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict, Generator, List

import psycopg
import pytest

from fraudwatch.config import Settings
from fraudwatch.data_access import AdminDataAccess
from fraudwatch.store import IndexCatalog, InMemoryDocumentStore

TEST_DB_NAME = "fraudwatch_test"
TEST_TABLE = "documents_test"

# 2023-11-14T22:13:20Z
BASE_MILLIS = 1_700_000_000_000


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        store_backend="memory",
        memory_store_path=None,
        composite_indexes="",
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", TEST_DB_NAME),
        db_documents_table=TEST_TABLE,
        default_page_size=10,
        search_debounce_ms=20,
        log_level="DEBUG",
    )


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def data_access(memory_store: InMemoryDocumentStore, test_settings: Settings) -> AdminDataAccess:
    return AdminDataAccess(memory_store, settings=test_settings)


@pytest.fixture
def make_transactions() -> Callable[..., List[Dict[str, Any]]]:
    """
    Factory for transaction records with distinct, increasing createdAt values.

    `flagged` of the `count` records get status "flagged"; the rest "completed".
    """

    def _make(count: int, flagged: int = 0, user_id: str = "user_1") -> List[Dict[str, Any]]:
        records = []
        for index in range(count):
            records.append(
                {
                    "id": f"txn_{index:03d}",
                    "amount": float(100 + index),
                    "reference": f"REF{index:05d}",
                    "description": "Groceries" if index % 2 else "Rent",
                    "fromUserId": user_id,
                    "fromMobile": f"98765{index:05d}",
                    "toMobile": "9000000000",
                    "status": "flagged" if index < flagged else "completed",
                    "type": "transfer" if index % 3 else "payment",
                    "category": "food" if index % 2 else "bills",
                    "createdAt": BASE_MILLIS + index * 60_000,
                }
            )
        return records

    return _make


@pytest.fixture
def seeded_store(
    memory_store: InMemoryDocumentStore,
    make_transactions: Callable[..., List[Dict[str, Any]]],
) -> InMemoryDocumentStore:
    """23 transactions, 9 of them flagged."""
    for record in make_transactions(23, flagged=9):
        memory_store.insert("transactions", record)
    return memory_store


@pytest.fixture
def indexed_store() -> InMemoryDocumentStore:
    """Memory store that declares the composite indexes the dashboard uses."""
    catalog = IndexCatalog.parse(
        [
            "risk_scores:userId,timestamp:desc",
            "raw_behavioral_sessions:userId,timestamp:desc",
            "transactions:fromUserId,createdAt:desc",
        ]
    )
    return InMemoryDocumentStore(indexes=catalog)


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return test_settings.dsn


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def pg_store(test_dsn: str, db_connection_available: bool) -> Generator[Any, None, None]:
    """
    Postgres document store on a dedicated table, emptied around each test.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    from fraudwatch.store.postgres import PostgresDocumentStore

    store = PostgresDocumentStore(dsn=test_dsn, table=TEST_TABLE)
    store.ensure_schema()
    store.clear()
    try:
        yield store
    finally:
        store.clear()
        store.close()
