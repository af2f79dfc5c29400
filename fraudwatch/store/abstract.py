"""
Document store contract consumed by the query engine.

The core only needs three operations against a remote document collection:
`count`, `query` (fully materialized, no cursor) and `insert`. Constraints are
deliberately limited to what a single-field index can serve: equality,
one order-by and a limit. Concrete backends implement the DocumentStore
protocol (or subclass AbstractDocumentStore) and translate driver failures
into `TransientStoreError` / `IndexRequiredError`.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Protocol, Sequence, Tuple, Union, runtime_checkable

Record = Dict[str, Any]

# Pseudo-field selecting a record by its store-assigned identity.
DOCUMENT_ID = "__name__"


@dataclass(frozen=True)
class Where:
    """Equality constraint `field == value`."""

    field: str
    value: Any


@dataclass(frozen=True)
class OrderBy:
    field: str
    direction: Literal["asc", "desc"] = "asc"


@dataclass(frozen=True)
class Limit:
    count: int


Constraint = Union[Where, OrderBy, Limit]


def split_constraints(
    constraints: Sequence[Constraint],
) -> Tuple[List[Where], List[OrderBy], int | None]:
    """Group constraints by kind; the last Limit wins."""
    wheres: List[Where] = []
    orders: List[OrderBy] = []
    limit: int | None = None
    for constraint in constraints:
        if isinstance(constraint, Where):
            wheres.append(constraint)
        elif isinstance(constraint, OrderBy):
            orders.append(constraint)
        elif isinstance(constraint, Limit):
            limit = constraint.count
        else:
            raise TypeError(f"Unsupported constraint: {constraint!r}")
    return wheres, orders, limit


@runtime_checkable
class DocumentStore(Protocol):
    """
    Read-mostly access to named document collections.

    Records returned by `query` always carry the store-assigned `id`.
    """

    name: str

    def count(self, collection: str, constraints: Sequence[Constraint] = ()) -> int:
        """Server-side aggregate count for the given constraints."""
        ...

    def query(self, collection: str, constraints: Sequence[Constraint] = ()) -> List[Record]:
        """Fully materialized, ordered result of the constrained query."""
        ...

    def insert(self, collection: str, record: Record) -> str:
        """Insert a record and return its assigned id."""
        ...


class AbstractDocumentStore(abc.ABC):
    """
    Optional ABC helper for class-based backends.

    Subclasses set `name` and implement the three store operations.
    """

    name: str

    @abc.abstractmethod
    def count(self, collection: str, constraints: Sequence[Constraint] = ()) -> int:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def query(self, collection: str, constraints: Sequence[Constraint] = ()) -> List[Record]:  # pragma: no cover - interface only
        raise NotImplementedError

    @abc.abstractmethod
    def insert(self, collection: str, record: Record) -> str:  # pragma: no cover - interface only
        raise NotImplementedError

    def close(self) -> None:
        """Release backend resources (no-op by default)."""


__all__ = [
    "DOCUMENT_ID",
    "Record",
    "Where",
    "OrderBy",
    "Limit",
    "Constraint",
    "split_constraints",
    "DocumentStore",
    "AbstractDocumentStore",
]
