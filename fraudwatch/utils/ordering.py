"""
In-memory ordering of store records.

Used both by the in-memory store (to emulate a server-side order-by) and by
the engine when an order-by could not be pushed down. Sorting is stable,
records missing the field sort as the lowest value, and on timestamp fields
ISO strings compare by their epoch value so mixed encodings still order
correctly.
"""

from __future__ import annotations

import numbers
from typing import Any, Dict, List, Sequence, Tuple

from fraudwatch.domain.timestamps import to_epoch_millis

Record = Dict[str, Any]

# Only these fields treat ISO-8601 strings as instants.
TIMESTAMP_FIELDS = frozenset({"createdAt", "updatedAt", "timestamp", "lastLoginAt"})


def sort_key(value: Any, timestamp: bool = False) -> Tuple[int, Any]:
    """Rank values by type first so heterogeneous fields never raise on compare."""
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, numbers.Real):
        return (2, value)
    if isinstance(value, str):
        millis = to_epoch_millis(value) if timestamp else None
        if millis is not None:
            return (2, millis)
        return (3, value.lower())
    millis = to_epoch_millis(value)
    if millis is not None:
        return (2, millis)
    return (4, str(value))


def sort_records(records: Sequence[Record], field: str, descending: bool) -> List[Record]:
    timestamp = field in TIMESTAMP_FIELDS
    return sorted(
        records,
        key=lambda record: sort_key(record.get(field), timestamp),
        reverse=descending,
    )


__all__ = ["TIMESTAMP_FIELDS", "sort_key", "sort_records"]
