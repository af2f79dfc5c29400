"""
Collection registry.

Each dashboard collection is described once: its filter model, record model,
default and allowed sorts, the scope field the store keeps a single-field
index for, the exact-match predicates evaluated in memory, and the fields
free-text search looks at.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Tuple

from fraudwatch.domain.filters import (
    BaseFilters,
    BehaviorProfileFilters,
    RiskScoreFilters,
    SessionFilters,
    TransactionFilters,
    UserFilters,
)
from fraudwatch.domain.models import SortSpec
from fraudwatch.domain.records import (
    BehavioralSession,
    BehaviorProfile,
    RiskScore,
    StoreRecord,
    Transaction,
    User,
)
from fraudwatch.errors import UnknownCollectionError

USERS = "users"
TRANSACTIONS = "transactions"
BEHAVIORAL_SESSIONS = "raw_behavioral_sessions"
RISK_SCORES = "risk_scores"
BEHAVIOR_PROFILES = "behaviour_profiles"

Record = Dict[str, Any]
# (record, filter value) -> keep?
Predicate = Callable[[Record, Any], bool]

# behaviorFilter value -> pattern list that must be non-empty
BEHAVIOR_FIELDS = {
    "motion": "motionPattern",
    "touch": "touchPatterns",
    "typing": "typingPatterns",
}


def field_equals(name: str) -> Predicate:
    def _predicate(record: Record, value: Any) -> bool:
        return record.get(name) == value

    return _predicate


def _verification(record: Record, value: Any) -> bool:
    verified = record.get("biometricEnabled") is True
    return verified if value == "verified" else not verified


def _has_behavior(record: Record, value: Any) -> bool:
    patterns = record.get(BEHAVIOR_FIELDS[value])
    return bool(patterns)


def search_text(value: Any) -> Optional[str]:
    """Display text a value is searched by; None for values search ignores."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, numbers.Integral):
        return str(value)
    if isinstance(value, numbers.Real):
        number = float(value)
        return str(int(number)) if number.is_integer() else str(number)
    return None


@dataclass(frozen=True)
class CollectionSpec:
    """Static description of one collection."""

    name: str
    filter_model: type[BaseFilters]
    record_model: type[StoreRecord]
    default_sort: SortSpec
    sortable_fields: FrozenSet[str]
    # filter attribute -> store field, pushed as the single equality constraint
    scope: Optional[Tuple[str, str]] = None
    exact: Mapping[str, Predicate] = field(default_factory=dict)
    search_fields: Tuple[str, ...] = ()

    def matches_search(self, record: Record, term: str) -> bool:
        needle = term.lower()
        for name in self.search_fields:
            text = search_text(record.get(name))
            if text is not None and needle in text.lower():
                return True
        return False


COLLECTIONS: Dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (
        CollectionSpec(
            name=USERS,
            filter_model=UserFilters,
            record_model=User,
            default_sort=SortSpec(field="createdAt", direction="desc"),
            sortable_fields=frozenset(
                {"createdAt", "updatedAt", "lastLoginAt", "fullName", "emailId", "balance", "age"}
            ),
            exact={
                "status_filter": field_equals("status"),
                "verification_filter": _verification,
            },
            search_fields=("fullName", "emailId", "mobile"),
        ),
        CollectionSpec(
            name=TRANSACTIONS,
            filter_model=TransactionFilters,
            record_model=Transaction,
            default_sort=SortSpec(field="createdAt", direction="desc"),
            sortable_fields=frozenset({"createdAt", "updatedAt", "amount", "status", "type", "category"}),
            scope=("user_id", "fromUserId"),
            exact={
                "status": field_equals("status"),
                "type": field_equals("type"),
                "category": field_equals("category"),
            },
            search_fields=("reference", "description", "fromMobile", "toMobile", "amount"),
        ),
        CollectionSpec(
            name=BEHAVIORAL_SESSIONS,
            filter_model=SessionFilters,
            record_model=BehavioralSession,
            default_sort=SortSpec(field="timestamp", direction="desc"),
            sortable_fields=frozenset({"timestamp", "createdAt", "updatedAt", "sessionId", "userId"}),
            scope=("user_id", "userId"),
            exact={"behavior_filter": _has_behavior},
            search_fields=("sessionId", "userId"),
        ),
        CollectionSpec(
            name=RISK_SCORES,
            filter_model=RiskScoreFilters,
            record_model=RiskScore,
            default_sort=SortSpec(field="timestamp", direction="desc"),
            sortable_fields=frozenset({"timestamp", "createdAt", "totalScore", "riskLevel"}),
            scope=("user_id", "userId"),
            exact={"risk_level": field_equals("riskLevel")},
            search_fields=("sessionId", "reason", "recommendation"),
        ),
        CollectionSpec(
            name=BEHAVIOR_PROFILES,
            filter_model=BehaviorProfileFilters,
            record_model=BehaviorProfile,
            default_sort=SortSpec(field="userId", direction="asc"),
            sortable_fields=frozenset({"userId", "simOperator"}),
            scope=("user_id", "userId"),
        ),
    )
}


def get_collection(name: str) -> CollectionSpec:
    try:
        return COLLECTIONS[name]
    except KeyError:
        raise UnknownCollectionError(name) from None


__all__ = [
    "USERS",
    "TRANSACTIONS",
    "BEHAVIORAL_SESSIONS",
    "RISK_SCORES",
    "BEHAVIOR_PROFILES",
    "BEHAVIOR_FIELDS",
    "COLLECTIONS",
    "CollectionSpec",
    "Predicate",
    "field_equals",
    "get_collection",
    "search_text",
]
