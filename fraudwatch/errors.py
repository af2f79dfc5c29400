"""
Error taxonomy for the fraudwatch data-access layer.

Store failures are split into transient ones (network, timeout, index not
ready) that list/aggregate reads downgrade to an empty response, and
validation failures that are raised at the boundary before any store call.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple


class FraudwatchError(Exception):
    """Base class for every error raised by this package."""


class ValidationError(FraudwatchError, ValueError):
    """
    Malformed request parameters (unknown filter key, bad sort, bad page size).

    Raised synchronously, before the document store is contacted.
    """


class UnknownCollectionError(ValidationError):
    """Requested collection is not registered."""

    def __init__(self, collection: str) -> None:
        super().__init__(f"Unknown collection '{collection}'")
        self.collection = collection


class TransientStoreError(FraudwatchError):
    """Network/timeout/availability failure reported by the document store."""

    def __init__(self, message: str, *, collection: Optional[str] = None) -> None:
        super().__init__(message)
        self.collection = collection


class IndexRequiredError(TransientStoreError):
    """
    The store refused a query because a composite index is not declared.

    `fields` lists (field, direction) pairs in the order the index must be
    created so operators can provision it out-of-band.
    """

    def __init__(self, collection: str, fields: Sequence[Tuple[str, str]]) -> None:
        self.fields: Tuple[Tuple[str, str], ...] = tuple(fields)
        super().__init__(
            f"The query on '{collection}' requires a composite index on "
            f"{self.describe_fields()}",
            collection=collection,
        )

    def describe_fields(self) -> str:
        return ", ".join(f"{name} ({direction})" for name, direction in self.fields)

    def remediation(self) -> str:
        """Human-readable instructions for creating the missing index."""
        lines = [f"Create a composite index on collection '{self.collection}':"]
        for position, (name, direction) in enumerate(self.fields, start=1):
            label = "Ascending" if direction == "asc" else "Descending"
            lines.append(f"  Field {position}: {name} ({label})")
        lines.append("Index creation usually takes a few seconds to minutes.")
        return "\n".join(lines)


class RecordDecodeError(FraudwatchError):
    """A store record could not be decoded into its typed model."""

    def __init__(self, collection: str, record_id: Optional[str], detail: str) -> None:
        super().__init__(
            f"Could not decode record '{record_id}' from '{collection}': {detail}"
        )
        self.collection = collection
        self.record_id = record_id
        self.detail = detail


__all__ = [
    "FraudwatchError",
    "ValidationError",
    "UnknownCollectionError",
    "TransientStoreError",
    "IndexRequiredError",
    "RecordDecodeError",
]
