"""
Postgres-backed document store.

Every collection lives in a single JSONB table keyed by (collection, id).
Equality constraints compile to `data -> field = value::jsonb`, the order-by
to `ORDER BY data -> field` with timestamp encodings compared as epoch
millis, so the backend serves exactly the constraint shapes the in-memory
store does. Composite-index requirements are enforced
from the declared IndexCatalog before any SQL is sent.

Driver failures are retried with tenacity and then surfaced as
TransientStoreError.
"""

from __future__ import annotations

import functools
import json
import uuid
from typing import Any, List, Optional, Sequence, Tuple

import psycopg
from psycopg import sql
from psycopg.types.json import Jsonb

from fraudwatch.domain.timestamps import json_default
from fraudwatch.errors import IndexRequiredError, TransientStoreError
from fraudwatch.infrastructure.db_factory import PoolManager, db_retry
from fraudwatch.store.abstract import (
    DOCUMENT_ID,
    AbstractDocumentStore,
    Constraint,
    Record,
    split_constraints,
)
from fraudwatch.store.indexes import IndexCatalog
from fraudwatch.utils.logging import get_logger
from fraudwatch.utils.ordering import TIMESTAMP_FIELDS

log = get_logger(__name__)

_dumps = functools.partial(json.dumps, default=json_default)

# On timestamp fields, seconds/nanoseconds objects and ISO strings sort as epoch millis.
_SORT_KEY = sql.SQL(
    r"CASE"
    r" WHEN jsonb_typeof(data -> {f}) = 'object' AND data -> {f} ? 'seconds'"
    r" THEN to_jsonb((data -> {f} ->> 'seconds')::numeric * 1000"
    r" + COALESCE((data -> {f} ->> 'nanoseconds')::numeric, 0) / 1000000)"
    r" WHEN jsonb_typeof(data -> {f}) = 'string' AND (data ->> {f}) ~ '^\d{{4}}-\d{{2}}-\d{{2}}T'"
    r" THEN to_jsonb(extract(epoch FROM (data ->> {f})::timestamptz) * 1000)"
    r" ELSE data -> {f} END"
)


def _sort_key(field: str) -> sql.Composable:
    if field in TIMESTAMP_FIELDS:
        return _SORT_KEY.format(f=sql.Literal(field))
    return sql.SQL("data -> {}").format(sql.Literal(field))


class PostgresDocumentStore(AbstractDocumentStore):
    """JSONB document collections on top of a psycopg connection pool."""

    name: str = "postgres"

    def __init__(
        self,
        dsn: Optional[str] = None,
        table: str = "documents",
        indexes: Optional[IndexCatalog] = None,
        max_pool_size: int = 10,
    ) -> None:
        self.dsn = dsn
        self.table = table
        self.indexes = indexes or IndexCatalog()
        self.max_pool_size = max_pool_size
        self._manager = PoolManager()

    def ensure_schema(self) -> None:
        """Create the documents table and its collection index if missing."""
        table = sql.Identifier(self.table)
        statements = [
            sql.SQL(
                "CREATE TABLE IF NOT EXISTS {} ("
                " collection TEXT NOT NULL,"
                " id TEXT NOT NULL,"
                " data JSONB NOT NULL,"
                " PRIMARY KEY (collection, id))"
            ).format(table),
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} USING GIN (data)").format(
                sql.Identifier(f"{self.table}_data_gin"), table
            ),
        ]
        self._run(None, lambda cur: [cur.execute(stmt) for stmt in statements], commit=True)

    def _where(self, collection: str, constraints: Sequence[Constraint]) -> Tuple[sql.Composable, List[Any], list, Optional[int]]:
        wheres, orders, limit = split_constraints(constraints)
        missing = self.indexes.missing_index(collection, wheres, orders)
        if missing is not None:
            raise IndexRequiredError(collection, missing)

        clauses: List[sql.Composable] = [sql.SQL("collection = %s")]
        params: List[Any] = [collection]
        for where in wheres:
            if where.field == DOCUMENT_ID:
                clauses.append(sql.SQL("id = %s"))
                params.append(str(where.value))
            else:
                clauses.append(sql.SQL("data -> {} = %s").format(sql.Literal(where.field)))
                params.append(Jsonb(where.value, dumps=_dumps))
        return sql.SQL(" AND ").join(clauses), params, orders, limit

    def count(self, collection: str, constraints: Sequence[Constraint] = ()) -> int:
        where, params, _, _ = self._where(collection, constraints)
        query = sql.SQL("SELECT count(*) FROM {} WHERE {}").format(
            sql.Identifier(self.table), where
        )

        def _fetch(cur: psycopg.Cursor) -> int:
            cur.execute(query, params)
            return int(cur.fetchone()[0])

        return self._run(collection, _fetch)

    def query(self, collection: str, constraints: Sequence[Constraint] = ()) -> List[Record]:
        where, params, orders, limit = self._where(collection, constraints)
        statement = sql.SQL("SELECT id, data FROM {} WHERE {}").format(
            sql.Identifier(self.table), where
        )
        if orders:
            terms = [
                sql.SQL("{} {}").format(
                    _sort_key(order.field),
                    sql.SQL("DESC NULLS LAST" if order.direction == "desc" else "ASC NULLS FIRST"),
                )
                for order in orders
            ]
            statement = sql.SQL("{} ORDER BY {}").format(statement, sql.SQL(", ").join(terms))
        if limit is not None:
            statement = sql.SQL("{} LIMIT {}").format(statement, sql.Literal(max(limit, 0)))

        def _fetch(cur: psycopg.Cursor) -> List[Record]:
            cur.execute(statement, params)
            return [{**data, "id": record_id} for record_id, data in cur.fetchall()]

        return self._run(collection, _fetch)

    def insert(self, collection: str, record: Record) -> str:
        data = dict(record)
        record_id = str(data.pop("id", None) or uuid.uuid4().hex)
        statement = sql.SQL(
            "INSERT INTO {} (collection, id, data) VALUES (%s, %s, %s)"
            " ON CONFLICT (collection, id) DO UPDATE SET data = EXCLUDED.data"
        ).format(sql.Identifier(self.table))
        self._run(
            collection,
            lambda cur: cur.execute(statement, [collection, record_id, Jsonb(data, dumps=_dumps)]),
            commit=True,
        )
        return record_id

    def clear(self, collection: Optional[str] = None) -> None:
        table = sql.Identifier(self.table)
        if collection is None:
            statement, params = sql.SQL("TRUNCATE TABLE {}").format(table), []
        else:
            statement = sql.SQL("DELETE FROM {} WHERE collection = %s").format(table)
            params = [collection]
        self._run(collection, lambda cur: cur.execute(statement, params), commit=True)

    def _run(self, collection: Optional[str], work, commit: bool = False):
        try:
            return self._execute(work, commit)
        except psycopg.Error as exc:
            log.error(
                "Document store call failed",
                extra={"collection": collection, "error": str(exc)},
            )
            raise TransientStoreError(str(exc), collection=collection) from exc

    @db_retry
    def _execute(self, work, commit: bool):
        pool = self._manager.get_pool(self.dsn, max_size=self.max_pool_size)
        with pool.connection() as conn:
            with conn.cursor() as cur:
                result = work(cur)
            if commit:
                conn.commit()
        return result

    def close(self) -> None:
        self._manager.close_all()


__all__ = ["PostgresDocumentStore"]
