"""
Domain package for fraudwatch.

Exports the request/response models, per-collection filter sets, typed
records and the timestamp normalizer. Keep this package focused on data
definitions and validation concerns.
"""

from fraudwatch.domain.filters import (
    BaseFilters,
    BehaviorProfileFilters,
    FilterSpec,
    RiskScoreFilters,
    SessionFilters,
    TransactionFilters,
    UserFilters,
    parse_filters,
)
from fraudwatch.domain.models import PageRequest, PageResponse, Pagination, SortSpec
from fraudwatch.domain.records import (
    AdminStats,
    BehavioralSession,
    BehaviorProfile,
    RiskScore,
    Transaction,
    User,
    decode_record,
)
from fraudwatch.domain.timestamps import normalize, to_epoch_millis

__all__ = [
    "AdminStats",
    "BaseFilters",
    "BehaviorProfile",
    "BehaviorProfileFilters",
    "BehavioralSession",
    "FilterSpec",
    "PageRequest",
    "PageResponse",
    "Pagination",
    "RiskScore",
    "RiskScoreFilters",
    "SessionFilters",
    "SortSpec",
    "Transaction",
    "TransactionFilters",
    "User",
    "UserFilters",
    "decode_record",
    "normalize",
    "parse_filters",
    "to_epoch_millis",
]
