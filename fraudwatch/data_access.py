"""
Data-access facade consumed by the dashboard.

Wraps the query builder and fetch engine behind one call per dashboard
screen. Error policy:

- malformed parameters raise ValidationError before the store is contacted,
- list and aggregate reads never raise store errors; they return an empty,
  well-typed result carrying an `error` message (or an empty list / None),
- single-record lookups by id propagate store errors so callers can tell
  "absent" (None) from "failed" (exception).

Usage:
    from fraudwatch.data_access import AdminDataAccess
    from fraudwatch.store import build_store

    access = AdminDataAccess(build_store())
    page = access.get_paginated_transactions(page=2, page_size=5, status="flagged")
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from fraudwatch.config import Settings, get_settings
from fraudwatch.domain.filters import BaseFilters
from fraudwatch.domain.models import PageRequest, PageResponse, SortSpec
from fraudwatch.domain.records import (
    AdminStats,
    BehavioralSession,
    BehaviorProfile,
    DailyTransactions,
    DailyUsers,
    RiskScore,
    StoreRecord,
    Transaction,
    User,
    VersionShare,
    decode_record,
)
from fraudwatch.domain.timestamps import datetime_to_millis, normalize, to_epoch_millis
from fraudwatch.errors import RecordDecodeError, TransientStoreError
from fraudwatch.query.assembler import empty_page
from fraudwatch.query.builder import QueryPlan, build
from fraudwatch.query.collections import (
    BEHAVIOR_PROFILES,
    BEHAVIORAL_SESSIONS,
    RISK_SCORES,
    TRANSACTIONS,
    USERS,
    CollectionSpec,
    get_collection,
)
from fraudwatch.query.engine import FetchEngine
from fraudwatch.store.abstract import DOCUMENT_ID, DocumentStore, Limit, Record, Where
from fraudwatch.store.indexes import IndexCatalog
from fraudwatch.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_APP_VERSION = "1.0.0"
ACTIVE_WINDOW_DAYS = 30
TREND_DAYS = 7
RECENT_LIMIT = 10
ALL_SESSIONS_LIMIT = 100

# List and aggregate reads downgrade these to an empty result.
DEGRADABLE_ERRORS = (TransientStoreError, RecordDecodeError)

SortArg = Union[SortSpec, Mapping[str, Any], None]
FilterArg = Union[BaseFilters, Mapping[str, Any], None]


def _clean(filters: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in filters.items() if value is not None}


class AdminDataAccess:
    """One instance per document store; safe to share across coordinators."""

    def __init__(
        self,
        store: DocumentStore,
        settings: Optional[Settings] = None,
        indexes: Optional[IndexCatalog] = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        if indexes is None:
            indexes = getattr(store, "indexes", None)
        if indexes is None:
            indexes = IndexCatalog.parse(self.settings.index_specs)
        self.indexes = indexes
        self.engine = FetchEngine(store)

    # ------------------------------------------------------------------ plans

    def plan(self, collection: str, filters: FilterArg = None, sort: SortArg = None) -> QueryPlan:
        return build(
            collection,
            filters,
            sort,
            indexes=self.indexes,
            push_scope=self.settings.push_scope_filters,
        )

    def _fetch_all(self, collection: str, filters: FilterArg = None, sort: SortArg = None) -> List[Record]:
        return self.engine.fetch(self.plan(collection, filters, sort))

    @staticmethod
    def _decode_all(spec: CollectionSpec, records: Sequence[Record]) -> List[Any]:
        return [decode_record(spec.record_model, record, spec.name) for record in records]

    # ------------------------------------------------------- paginated reads

    def paginate(
        self,
        collection: str,
        filters: FilterArg = None,
        sort: SortArg = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> PageResponse:
        """
        One page of `collection` after residual filtering.

        Raises
        ------
        ValidationError
            Unknown collection or filter key, bad sort, bad page size.
        """
        if page_size is None:
            page_size = self.settings.default_page_size
        request = PageRequest.of(page, page_size)
        plan = self.plan(collection, filters, sort)
        try:
            return self.engine.run(plan, request)
        except DEGRADABLE_ERRORS as exc:
            log.error(
                "Paginated read degraded to empty page",
                extra={"collection": collection, "error": str(exc)},
            )
            return empty_page(request, plan.filters.active(), error=str(exc))

    def get_paginated_users(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        status_filter: Optional[str] = None,
        verification_filter: Optional[str] = None,
        sort: SortArg = None,
    ) -> PageResponse:
        filters = {
            "search": search,
            "statusFilter": status_filter,
            "verificationFilter": verification_filter,
        }
        return self.paginate(USERS, _clean(filters), sort, page, page_size)

    def get_paginated_transactions(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        status: Optional[str] = None,
        type: Optional[str] = None,
        category: Optional[str] = None,
        user_id: Optional[str] = None,
        sort: SortArg = None,
    ) -> PageResponse:
        filters = {
            "search": search,
            "status": status,
            "type": type,
            "category": category,
            "userId": user_id,
        }
        return self.paginate(TRANSACTIONS, _clean(filters), sort, page, page_size)

    def get_paginated_behavioral_sessions(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        behavior_filter: Optional[str] = None,
        user_id: Optional[str] = None,
        sort: SortArg = None,
    ) -> PageResponse:
        filters = {"search": search, "behaviorFilter": behavior_filter, "userId": user_id}
        return self.paginate(BEHAVIORAL_SESSIONS, _clean(filters), sort, page, page_size)

    def get_user_risk_scores(self, user_id: str, page: int = 1, page_size: int = 10) -> PageResponse:
        """Risk scores of one user, newest first."""
        return self.paginate(RISK_SCORES, {"userId": user_id}, None, page, page_size)

    # --------------------------------------------------- single-record reads

    def _get_by_id(self, collection: str, record_id: str) -> Optional[StoreRecord]:
        spec = get_collection(collection)
        rows = self.store.query(collection, (Where(DOCUMENT_ID, record_id), Limit(1)))
        if not rows:
            return None
        return decode_record(spec.record_model, normalize(rows[0]), collection)

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        """
        Raises
        ------
        TransientStoreError
            If the store read fails; None only means the user does not exist.
        """
        return self._get_by_id(USERS, user_id)

    def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]:
        return self._get_by_id(TRANSACTIONS, transaction_id)

    def get_behavioral_session_by_id(self, session_id: str) -> Optional[BehavioralSession]:
        return self._get_by_id(BEHAVIORAL_SESSIONS, session_id)

    # ------------------------------------------------------ user-scoped reads

    def get_user_transactions(self, user_id: str) -> List[Transaction]:
        """Every transaction sent by the user, newest first."""
        try:
            records = self._fetch_all(TRANSACTIONS, {"userId": user_id})
            return self._decode_all(get_collection(TRANSACTIONS), records)
        except DEGRADABLE_ERRORS as exc:
            log.error("Error fetching user transactions", extra={"user_id": user_id, "error": str(exc)})
            return []

    def get_user_behavioral_sessions(self, user_id: str, limit: Optional[int] = None) -> List[BehavioralSession]:
        """The user's most recent sessions, newest first."""
        limit = limit or self.settings.recent_sessions_limit
        try:
            records = self._fetch_all(BEHAVIORAL_SESSIONS, {"userId": user_id})
            return self._decode_all(get_collection(BEHAVIORAL_SESSIONS), records[:limit])
        except DEGRADABLE_ERRORS as exc:
            log.error("Error fetching user behavioral sessions", extra={"user_id": user_id, "error": str(exc)})
            return []

    def get_user_behavior_profile(self, user_id: str) -> Optional[BehaviorProfile]:
        try:
            records = self._fetch_all(BEHAVIOR_PROFILES, {"userId": user_id})
            if not records:
                log.info("No behavior profile found", extra={"user_id": user_id})
                return None
            return decode_record(BehaviorProfile, records[0], BEHAVIOR_PROFILES)
        except DEGRADABLE_ERRORS as exc:
            log.error("Error fetching user behavior profile", extra={"user_id": user_id, "error": str(exc)})
            return None

    def get_user_latest_risk_score(self, user_id: str) -> Optional[RiskScore]:
        try:
            records = self._fetch_all(RISK_SCORES, {"userId": user_id})
            if not records:
                return None
            return decode_record(RiskScore, records[0], RISK_SCORES)
        except DEGRADABLE_ERRORS as exc:
            log.error("Error fetching latest risk score", extra={"user_id": user_id, "error": str(exc)})
            return None

    # ------------------------------------------------------------- full lists

    def _list(self, collection: str, limit: Optional[int] = None) -> List[Any]:
        try:
            records = self._fetch_all(collection)
            if limit is not None:
                records = records[:limit]
            return self._decode_all(get_collection(collection), records)
        except DEGRADABLE_ERRORS as exc:
            log.error("Error fetching collection", extra={"collection": collection, "error": str(exc)})
            return []

    def get_all_users(self) -> List[User]:
        return self._list(USERS)

    def get_all_transactions(self) -> List[Transaction]:
        return self._list(TRANSACTIONS)

    def get_all_behavioral_sessions(self) -> List[BehavioralSession]:
        return self._list(BEHAVIORAL_SESSIONS, limit=ALL_SESSIONS_LIMIT)

    # ------------------------------------------------------------ aggregates

    def get_admin_stats(self, now: Optional[datetime] = None) -> AdminStats:
        """
        Overview numbers for the dashboard home page.

        Totals come from server-side counts; activity, versions and the
        seven-day trends are computed in memory from the full user and
        transaction sets.
        """
        now = now or datetime.now(timezone.utc)
        try:
            total_users = self.store.count(USERS)
            total_transactions = self.store.count(TRANSACTIONS)
            total_sessions = self.store.count(BEHAVIORAL_SESSIONS)
            users = self._fetch_all(USERS)
            transactions = self._fetch_all(TRANSACTIONS)
            recent_users = self._decode_all(get_collection(USERS), users[:RECENT_LIMIT])
            recent_transactions = self._decode_all(get_collection(TRANSACTIONS), transactions[:RECENT_LIMIT])
        except DEGRADABLE_ERRORS as exc:
            log.error("Error fetching admin stats", extra={"error": str(exc)})
            return AdminStats(error=str(exc))

        cutoff = datetime_to_millis(now - timedelta(days=ACTIVE_WINDOW_DAYS))
        active_users = sum(
            1 for user in users if (to_epoch_millis(user.get("lastLoginAt")) or 0) >= cutoff
        )

        return AdminStats(
            total_users=total_users,
            active_users=active_users,
            total_transactions=total_transactions,
            total_transaction_amount=sum(_amount(t) for t in transactions),
            total_behavioral_sessions=total_sessions,
            app_versions=_version_shares(users),
            recent_users=recent_users,
            recent_transactions=recent_transactions,
            user_growth=_user_growth(users, now),
            transaction_trends=_transaction_trends(transactions, now),
        )

    # ----------------------------------------------------------- insert path

    def _insert(self, collection: str, data: Mapping[str, Any], **defaults: Any) -> str:
        record = dict(data)
        for key, value in defaults.items():
            record.setdefault(key, value)
        record_id = self.store.insert(collection, record)
        log.info("Record inserted", extra={"collection": collection, "record_id": record_id})
        return record_id

    def add_user(self, data: Mapping[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        return self._insert(USERS, data, createdAt=now, updatedAt=now, isActive=True)

    def add_transaction(self, data: Mapping[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        return self._insert(TRANSACTIONS, data, createdAt=now, updatedAt=now)

    def add_behavioral_session(self, data: Mapping[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        return self._insert(
            BEHAVIORAL_SESSIONS,
            data,
            timestamp=datetime_to_millis(now),
            createdAt=now,
            updatedAt=now,
        )

    def add_risk_score(self, data: Mapping[str, Any]) -> str:
        now = datetime.now(timezone.utc)
        return self._insert(RISK_SCORES, data, timestamp=datetime_to_millis(now), createdAt=now)

    def add_behavior_profile(self, data: Mapping[str, Any]) -> str:
        return self._insert(BEHAVIOR_PROFILES, data)


def _amount(record: Record) -> float:
    value = record.get("amount")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return 0.0


def _version_shares(users: Sequence[Record]) -> List[VersionShare]:
    counts = Counter(user.get("appVersion") or DEFAULT_APP_VERSION for user in users)
    total = sum(counts.values())
    return [
        VersionShare(
            version=version,
            count=count,
            percentage=(count / total) * 100 if total else 0.0,
        )
        for version, count in counts.items()
    ]


def _day_of(value: Any) -> Optional[str]:
    millis = to_epoch_millis(value)
    if millis is None:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).date().isoformat()


def _trend_days(now: datetime) -> List[str]:
    today = now.astimezone(timezone.utc).date()
    return [(today - timedelta(days=offset)).isoformat() for offset in range(TREND_DAYS - 1, -1, -1)]


def _user_growth(users: Sequence[Record], now: datetime) -> List[DailyUsers]:
    per_day = Counter(_day_of(user.get("createdAt")) for user in users)
    return [DailyUsers(day=day, users=per_day.get(day, 0)) for day in _trend_days(now)]


def _transaction_trends(transactions: Sequence[Record], now: datetime) -> List[DailyTransactions]:
    amounts: Dict[str, float] = {}
    counts: Counter = Counter()
    for transaction in transactions:
        day = _day_of(transaction.get("createdAt"))
        if day is None:
            continue
        counts[day] += 1
        amounts[day] = amounts.get(day, 0.0) + _amount(transaction)
    return [
        DailyTransactions(day=day, amount=amounts.get(day, 0.0), count=counts.get(day, 0))
        for day in _trend_days(now)
    ]


__all__ = ["AdminDataAccess", "DEGRADABLE_ERRORS"]
