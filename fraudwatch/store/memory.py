"""
In-memory document store.

Backs the demo CLI and the test-suite. It behaves like the remote store as far
as the core can observe: records are copied on the way in and out, ids are
assigned on insert, and equality + order-by combinations without a declared
composite index are refused with IndexRequiredError.

An optional JSON snapshot file lets CLI invocations share seeded data.
"""

from __future__ import annotations

import copy
import json
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from fraudwatch.domain.timestamps import json_default
from fraudwatch.errors import IndexRequiredError
from fraudwatch.store.abstract import (
    DOCUMENT_ID,
    AbstractDocumentStore,
    Constraint,
    Record,
    split_constraints,
)
from fraudwatch.store.indexes import IndexCatalog
from fraudwatch.utils.logging import get_logger
from fraudwatch.utils.ordering import sort_records

log = get_logger(__name__)


class InMemoryDocumentStore(AbstractDocumentStore):
    """Dict-backed collections keyed by collection name, then record id."""

    name: str = "memory"

    def __init__(
        self,
        indexes: Optional[IndexCatalog] = None,
        snapshot_path: Optional[Path] = None,
        autosave: bool = True,
    ) -> None:
        self.indexes = indexes or IndexCatalog()
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        # Rewrite the snapshot after every insert; bulk loaders turn this off and call save().
        self.autosave = autosave
        self._collections: Dict[str, Dict[str, Record]] = {}
        self._lock = threading.Lock()
        if self.snapshot_path is not None and self.snapshot_path.exists():
            self._load_snapshot(self.snapshot_path)

    def _load_snapshot(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            payload = json.load(f)
        for collection, records in payload.items():
            self._collections[collection] = {record_id: data for record_id, data in records.items()}
        log.info(
            "Loaded memory store snapshot",
            extra={"path": str(path), "collections": sorted(self._collections)},
        )

    def save(self, path: Optional[Path] = None) -> None:
        """Write every collection to a JSON snapshot."""
        target = Path(path) if path else self.snapshot_path
        if target is None:
            return
        target.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            payload = copy.deepcopy(self._collections)
        with target.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, default=json_default)

    def _select(self, collection: str, constraints: Sequence[Constraint]) -> List[Record]:
        wheres, orders, limit = split_constraints(constraints)
        missing = self.indexes.missing_index(collection, wheres, orders)
        if missing is not None:
            raise IndexRequiredError(collection, missing)

        with self._lock:
            stored = list(self._collections.get(collection, {}).items())

        rows: List[Record] = []
        for record_id, data in stored:
            record = {**copy.deepcopy(data), "id": record_id}
            if all(self._matches(record, where.field, where.value) for where in wheres):
                rows.append(record)

        # Apply the last order-by first so earlier ones take precedence.
        for order in reversed(orders):
            rows = sort_records(rows, order.field, descending=order.direction == "desc")
        if limit is not None:
            rows = rows[: max(limit, 0)]
        return rows

    @staticmethod
    def _matches(record: Record, field: str, value: Any) -> bool:
        if field == DOCUMENT_ID:
            return record["id"] == value
        return record.get(field) == value

    def count(self, collection: str, constraints: Sequence[Constraint] = ()) -> int:
        return len(self._select(collection, constraints))

    def query(self, collection: str, constraints: Sequence[Constraint] = ()) -> List[Record]:
        return self._select(collection, constraints)

    def insert(self, collection: str, record: Record) -> str:
        data = copy.deepcopy(dict(record))
        record_id = str(data.pop("id", None) or uuid.uuid4().hex)
        with self._lock:
            self._collections.setdefault(collection, {})[record_id] = data
        if self.autosave and self.snapshot_path is not None:
            self.save()
        return record_id

    def clear(self) -> None:
        with self._lock:
            self._collections.clear()


__all__ = ["InMemoryDocumentStore"]
