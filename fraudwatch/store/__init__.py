"""
Document store backends.

`build_store` picks the backend named by settings (`STORE_BACKEND`) and wires
in the declared composite indexes (`COMPOSITE_INDEXES`).
"""

from __future__ import annotations

from typing import Optional

from fraudwatch.config import Settings, get_settings
from fraudwatch.store.abstract import (
    DOCUMENT_ID,
    AbstractDocumentStore,
    Constraint,
    DocumentStore,
    Limit,
    OrderBy,
    Record,
    Where,
)
from fraudwatch.store.indexes import CompositeIndex, IndexCatalog
from fraudwatch.store.memory import InMemoryDocumentStore


def build_store(settings: Optional[Settings] = None) -> DocumentStore:
    """Instantiate the configured document store backend."""
    settings = settings or get_settings()
    indexes = IndexCatalog.parse(settings.index_specs)
    if settings.store_backend == "postgres":
        # Imported lazily so the memory backend works without a database driver configured.
        from fraudwatch.store.postgres import PostgresDocumentStore

        store = PostgresDocumentStore(
            dsn=settings.dsn,
            table=settings.db_documents_table,
            indexes=indexes,
            max_pool_size=settings.db_pool_max_size,
        )
        store.ensure_schema()
        return store
    return InMemoryDocumentStore(indexes=indexes, snapshot_path=settings.memory_store_path)


__all__ = [
    "DOCUMENT_ID",
    "AbstractDocumentStore",
    "CompositeIndex",
    "Constraint",
    "DocumentStore",
    "IndexCatalog",
    "InMemoryDocumentStore",
    "Limit",
    "OrderBy",
    "Record",
    "Where",
    "build_store",
]
