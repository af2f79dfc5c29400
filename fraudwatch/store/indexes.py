"""
Declared composite indexes.

The document store serves equality filters and a single order-by from
automatically maintained single-field indexes. Combining an equality on one
field with an order-by on another needs a composite index that an operator
must declare out-of-band. The catalog records which ones exist so the query
builder can avoid unsupported combinations and backends can refuse them.

Index specs are strings of the form
`collection:field[:asc|desc],field[:asc|desc]`, e.g.
`risk_scores:userId,timestamp:desc`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Sequence, Tuple

from fraudwatch.errors import ValidationError
from fraudwatch.store.abstract import DOCUMENT_ID, OrderBy, Where

IndexField = Tuple[str, str]


@dataclass(frozen=True)
class CompositeIndex:
    collection: str
    fields: Tuple[IndexField, ...]

    @classmethod
    def parse(cls, spec: str) -> "CompositeIndex":
        collection, sep, body = spec.strip().partition(":")
        if not sep or not collection or not body:
            raise ValidationError(f"Invalid index spec '{spec}'")
        fields = []
        for part in body.split(","):
            name, _, direction = part.strip().partition(":")
            direction = (direction or "asc").lower()
            if not name or direction not in ("asc", "desc"):
                raise ValidationError(f"Invalid index field '{part}' in '{spec}'")
            fields.append((name, direction))
        if len(fields) < 2:
            raise ValidationError(f"Composite index '{spec}' needs at least two fields")
        return cls(collection=collection, fields=tuple(fields))

    def __str__(self) -> str:
        body = ",".join(f"{name}:{direction}" for name, direction in self.fields)
        return f"{self.collection}:{body}"


def required_index(
    wheres: Sequence[Where],
    orders: Sequence[OrderBy],
) -> Optional[Tuple[IndexField, ...]]:
    """
    Composite index fields needed to serve the constraints, or None when the
    automatic single-field indexes suffice.
    """
    equality = []
    for where in wheres:
        if where.field != DOCUMENT_ID and where.field not in equality:
            equality.append(where.field)
    if not orders or not equality:
        return None if len(orders) <= 1 else tuple((o.field, o.direction) for o in orders)
    ordering = [(o.field, o.direction) for o in orders if o.field not in equality]
    if not ordering:
        return None
    return tuple((name, "asc") for name in equality) + tuple(ordering)


class IndexCatalog:
    """Set of composite indexes known to exist in the store."""

    def __init__(self, indexes: Iterable[CompositeIndex] = ()) -> None:
        self._indexes: Tuple[CompositeIndex, ...] = tuple(indexes)

    @classmethod
    def parse(cls, specs: Iterable[str]) -> "IndexCatalog":
        return cls(CompositeIndex.parse(spec) for spec in specs if spec.strip())

    def __iter__(self) -> Iterator[CompositeIndex]:
        return iter(self._indexes)

    def __len__(self) -> int:
        return len(self._indexes)

    def has(self, collection: str, fields: Sequence[IndexField]) -> bool:
        wanted = tuple(fields)
        equality = {name for name, direction in wanted if direction == "asc"}
        for index in self._indexes:
            if index.collection != collection or len(index.fields) != len(wanted):
                continue
            if index.fields == wanted:
                return True
            # Equality prefix may be declared in any order; the order-by tail must match.
            tail = wanted[-1]
            head = {name for name, _ in index.fields[:-1]}
            if index.fields[-1] == tail and head == equality - {tail[0]}:
                return True
        return False

    def missing_index(
        self,
        collection: str,
        wheres: Sequence[Where],
        orders: Sequence[OrderBy],
    ) -> Optional[Tuple[IndexField, ...]]:
        """Fields of the composite index the query needs but nobody declared."""
        needed = required_index(wheres, orders)
        if needed is None or self.has(collection, needed):
            return None
        return needed


__all__ = ["CompositeIndex", "IndexCatalog", "required_index"]
