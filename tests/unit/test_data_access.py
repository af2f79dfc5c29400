from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Sequence

import pytest

from fraudwatch.config import Settings
from fraudwatch.data_access import AdminDataAccess
from fraudwatch.domain.timestamps import datetime_to_millis
from fraudwatch.errors import TransientStoreError, ValidationError
from fraudwatch.store import InMemoryDocumentStore
from fraudwatch.store.abstract import Constraint

NOW = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


class _BrokenStore:
    """Every call fails the way a dropped network connection would."""

    name = "broken"

    def __init__(self) -> None:
        self.calls = 0

    def count(self, collection: str, constraints: Sequence[Constraint] = ()) -> int:
        self.calls += 1
        raise TransientStoreError("connection reset", collection=collection)

    def query(self, collection: str, constraints: Sequence[Constraint] = ()) -> List[Dict[str, Any]]:
        self.calls += 1
        raise TransientStoreError("connection reset", collection=collection)

    def insert(self, collection: str, record: Dict[str, Any]) -> str:
        raise TransientStoreError("read-only", collection=collection)


@pytest.fixture
def broken_access(test_settings: Settings) -> AdminDataAccess:
    return AdminDataAccess(_BrokenStore(), settings=test_settings)


class TestPaginatedReads:
    def test_flagged_scenario_through_facade(self, seeded_store: InMemoryDocumentStore, test_settings: Settings) -> None:
        access = AdminDataAccess(seeded_store, settings=test_settings)

        response = access.get_paginated_transactions(page=2, page_size=5, status="flagged")

        assert len(response.data) == 4
        assert response.pagination.total_items == 9
        assert response.ok

    def test_default_page_size_comes_from_settings(self, seeded_store: InMemoryDocumentStore, test_settings: Settings) -> None:
        access = AdminDataAccess(seeded_store, settings=test_settings)

        response = access.paginate("transactions")

        assert response.pagination.page_size == test_settings.default_page_size

    def test_users_search_and_verification(self, data_access: AdminDataAccess) -> None:
        data_access.add_user({"id": "u1", "fullName": "Asha Rao", "emailId": "asha@x.io", "biometricEnabled": True})
        data_access.add_user({"id": "u2", "fullName": "Ravi Rao", "emailId": "ravi@x.io"})
        data_access.add_user({"id": "u3", "fullName": "Meera Das", "mobile": "98765"})

        rao = data_access.get_paginated_users(search="rao")
        verified_rao = data_access.get_paginated_users(search="rao", verification_filter="verified")
        by_mobile = data_access.get_paginated_users(search="876")

        assert {u.id for u in rao.data} == {"u1", "u2"}
        assert [u.id for u in verified_rao.data] == ["u1"]
        assert [u.id for u in by_mobile.data] == ["u3"]

    def test_session_behavior_filter(self, data_access: AdminDataAccess) -> None:
        data_access.add_behavioral_session({"id": "s1", "userId": "u1", "touchPatterns": [{"gestureType": "tap"}]})
        data_access.add_behavioral_session({"id": "s2", "userId": "u1", "typingPatterns": [{"inputType": "pin"}]})

        response = data_access.get_paginated_behavioral_sessions(behavior_filter="touch")

        assert [s.id for s in response.data] == ["s1"]
        assert response.filters == {"behaviorFilter": "touch"}

    def test_validation_errors_raise_before_store_call(self, broken_access: AdminDataAccess) -> None:
        with pytest.raises(ValidationError):
            broken_access.paginate("transactions", {"colour": "red"})
        with pytest.raises(ValidationError):
            broken_access.paginate("transactions", page_size=0)
        with pytest.raises(ValidationError):
            broken_access.paginate("transactions", sort={"field": "pinHash"})

        assert broken_access.store.calls == 0

    def test_transient_failure_degrades_to_empty_page(self, broken_access: AdminDataAccess, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="fraudwatch.data_access"):
            response = broken_access.get_paginated_transactions(page=3, page_size=5, status="flagged")

        assert response.data == ()
        assert response.pagination.total_items == 0
        assert response.pagination.current_page == 3
        assert response.filters == {"status": "flagged"}
        assert response.error == "connection reset"
        assert "degraded" in caplog.text

    def test_numeric_text_fields_decode_as_strings(self, data_access: AdminDataAccess) -> None:
        for index in range(5):
            data_access.add_user({"id": f"u{index}", "fullName": f"User {index}", "mobile": f"98765{index:05d}"})
        data_access.add_user({"id": "numeric", "fullName": "Numeric", "mobile": 9876500009, "status": 1})

        response = data_access.get_paginated_users(page=1, page_size=10)
        searched = data_access.get_paginated_users(search="98765000")

        assert response.ok
        assert response.pagination.total_items == 6
        assert len(response.data) == 6
        numeric = next(user for user in response.data if user.id == "numeric")
        assert numeric.mobile == "9876500009"
        assert searched.pagination.total_items == 6

    def test_decode_failure_degrades_to_empty_page(self, data_access: AdminDataAccess) -> None:
        data_access.add_transaction({"id": "bad", "amount": "lots"})

        response = data_access.get_paginated_transactions()

        assert response.data == ()
        assert "bad" in response.error

    def test_risk_scores_are_scoped_and_newest_first(self, data_access: AdminDataAccess) -> None:
        for index in range(12):
            data_access.add_risk_score({"id": f"r{index:02d}", "userId": "u1", "timestamp": 1000 + index})
        data_access.add_risk_score({"id": "x", "userId": "u2", "timestamp": 5000})

        response = data_access.get_user_risk_scores("u1", page=2, page_size=10)

        assert [r.id for r in response.data] == ["r01", "r00"]
        assert response.pagination.total_items == 12
        assert response.filters == {"userId": "u1"}


class TestSingleRecordReads:
    def test_lookup_by_id(self, data_access: AdminDataAccess) -> None:
        data_access.add_user({"id": "u1", "fullName": "Asha"})

        user = data_access.get_user_by_id("u1")

        assert user is not None
        assert user.full_name == "Asha"
        assert isinstance(user.created_at, int)

    def test_absent_record_is_none(self, data_access: AdminDataAccess) -> None:
        assert data_access.get_user_by_id("nobody") is None
        assert data_access.get_transaction_by_id("nothing") is None
        assert data_access.get_behavioral_session_by_id("nothing") is None

    def test_store_failure_propagates(self, broken_access: AdminDataAccess) -> None:
        with pytest.raises(TransientStoreError):
            broken_access.get_user_by_id("u1")
        with pytest.raises(TransientStoreError):
            broken_access.get_transaction_by_id("t1")
        with pytest.raises(TransientStoreError):
            broken_access.get_behavioral_session_by_id("s1")


class TestUserScopedReads:
    def test_user_transactions_newest_first(self, seeded_store: InMemoryDocumentStore, test_settings: Settings) -> None:
        access = AdminDataAccess(seeded_store, settings=test_settings)

        transactions = access.get_user_transactions("user_1")

        assert len(transactions) == 23
        assert transactions[0].id == "txn_022"
        assert transactions[-1].id == "txn_000"

    def test_user_sessions_capped_at_recent_limit(self, data_access: AdminDataAccess) -> None:
        for index in range(25):
            data_access.add_behavioral_session({"id": f"s{index:02d}", "userId": "u1", "timestamp": 1000 + index})

        sessions = data_access.get_user_behavioral_sessions("u1")

        assert len(sessions) == 20
        assert sessions[0].id == "s24"

    def test_latest_risk_score_and_profile(self, data_access: AdminDataAccess) -> None:
        data_access.add_risk_score({"id": "old", "userId": "u1", "timestamp": 1, "riskLevel": "low"})
        data_access.add_risk_score({"id": "new", "userId": "u1", "timestamp": 2, "riskLevel": "high"})
        data_access.add_behavior_profile({"id": "p1", "userId": "u1", "simOperator": "Jio"})

        latest = data_access.get_user_latest_risk_score("u1")
        profile = data_access.get_user_behavior_profile("u1")

        assert latest is not None and latest.id == "new"
        assert profile is not None and profile.sim_operator == "Jio"
        assert data_access.get_user_behavior_profile("u9") is None

    def test_failures_degrade(self, broken_access: AdminDataAccess) -> None:
        assert broken_access.get_user_transactions("u1") == []
        assert broken_access.get_user_behavioral_sessions("u1") == []
        assert broken_access.get_user_latest_risk_score("u1") is None
        assert broken_access.get_user_behavior_profile("u1") is None
        assert broken_access.get_all_users() == []
        assert broken_access.get_all_transactions() == []
        assert broken_access.get_all_behavioral_sessions() == []


class TestAdminStats:
    def test_overview_numbers(self, data_access: AdminDataAccess) -> None:
        recent_login = datetime_to_millis(NOW - timedelta(days=3))
        stale_login = datetime_to_millis(NOW - timedelta(days=45))
        data_access.add_user({"id": "u1", "appVersion": "2.0.0", "lastLoginAt": recent_login, "createdAt": NOW})
        data_access.add_user({"id": "u2", "lastLoginAt": stale_login, "createdAt": NOW - timedelta(days=1)})
        data_access.add_user({"id": "u3", "appVersion": "2.0.0", "createdAt": NOW - timedelta(days=20)})
        data_access.add_transaction({"id": "t1", "amount": 100.0, "createdAt": NOW})
        data_access.add_transaction({"id": "t2", "amount": 50.5, "createdAt": NOW - timedelta(days=2)})
        data_access.add_behavioral_session({"id": "s1", "userId": "u1"})

        stats = data_access.get_admin_stats(now=NOW)

        assert stats.error is None
        assert stats.total_users == 3
        assert stats.active_users == 1
        assert stats.total_transactions == 2
        assert stats.total_transaction_amount == pytest.approx(150.5)
        assert stats.total_behavioral_sessions == 1
        shares = {share.version: share for share in stats.app_versions}
        assert shares["2.0.0"].count == 2
        assert shares["1.0.0"].count == 1
        assert shares["1.0.0"].percentage == pytest.approx(100 / 3)
        assert [u.id for u in stats.recent_users] == ["u1", "u2", "u3"]
        assert [d.day for d in stats.user_growth][-1] == "2024-03-10"
        assert [d.users for d in stats.user_growth] == [0, 0, 0, 0, 0, 1, 1]
        assert [t.count for t in stats.transaction_trends] == [0, 0, 0, 0, 1, 0, 1]
        assert stats.transaction_trends[-1].amount == pytest.approx(100.0)

    def test_failure_degrades(self, broken_access: AdminDataAccess) -> None:
        stats = broken_access.get_admin_stats(now=NOW)

        assert stats.error == "connection reset"
        assert stats.total_users == 0


class TestInsertPaths:
    def test_add_user_stamps_timestamps(self, data_access: AdminDataAccess, memory_store: InMemoryDocumentStore) -> None:
        record_id = data_access.add_user({"fullName": "New"})

        stored = memory_store.query("users")[0]

        assert stored["id"] == record_id
        assert isinstance(stored["createdAt"], datetime)
        assert stored["isActive"] is True

    def test_add_behavioral_session_keeps_given_timestamp(self, data_access: AdminDataAccess, memory_store: InMemoryDocumentStore) -> None:
        data_access.add_behavioral_session({"id": "s1", "timestamp": 42})

        assert memory_store.query("raw_behavioral_sessions")[0]["timestamp"] == 42
