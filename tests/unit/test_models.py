from __future__ import annotations

import pytest

from fraudwatch.domain.filters import (
    SessionFilters,
    TransactionFilters,
    UserFilters,
    parse_filters,
)
from fraudwatch.domain.models import PageRequest, SortSpec
from fraudwatch.domain.records import BehaviorProfile, RiskScore, Transaction, User, decode_record
from fraudwatch.errors import RecordDecodeError, ValidationError
from fraudwatch.query.assembler import assemble, compute_pagination, empty_page

DEFAULT_PAGE_SIZE = 10


class TestFilters:
    def test_accepts_camel_case_and_snake_case_keys(self) -> None:
        camel = parse_filters(UserFilters, {"statusFilter": "active", "verificationFilter": "verified"})
        snake = parse_filters(UserFilters, {"status_filter": "active", "verification_filter": "verified"})

        assert camel == snake
        assert camel.active() == {"statusFilter": "active", "verificationFilter": "verified"}

    def test_unknown_key_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unknown filter key 'colour'"):
            parse_filters(TransactionFilters, {"colour": "red"})

    def test_key_of_another_collection_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_filters(UserFilters, {"behaviorFilter": "touch"})

    @pytest.mark.parametrize("unset", ["", "   ", "all", "ALL", None])
    def test_empty_and_all_mean_no_constraint(self, unset) -> None:
        filters = parse_filters(TransactionFilters, {"status": unset, "category": unset})

        assert filters.active() == {}

    def test_closed_value_sets_are_enforced(self) -> None:
        with pytest.raises(ValidationError):
            parse_filters(SessionFilters, {"behaviorFilter": "gaze"})

    def test_filter_object_of_wrong_collection_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            parse_filters(UserFilters, TransactionFilters(status="flagged"))

    def test_merged_applies_changes_and_keeps_the_rest(self) -> None:
        filters = TransactionFilters(status="flagged", category="food")

        merged = filters.merged({"search": "abc", "category": "all"})

        assert merged.active() == {"status": "flagged", "search": "abc"}
        assert filters.category == "food"

    def test_merged_accepts_snake_case_keys(self) -> None:
        merged = TransactionFilters(user_id="u1").merged({"user_id": "u2"})

        assert merged.user_id == "u2"

    def test_merged_rejects_unknown_keys(self) -> None:
        with pytest.raises(ValidationError):
            TransactionFilters().merged({"behaviorFilter": "touch"})


class TestPageRequest:
    def test_page_below_one_is_clamped(self) -> None:
        assert PageRequest.of(0, 5).page == 1
        assert PageRequest.of(-3, 5).page == 1

    @pytest.mark.parametrize("page", ["0", 0.0, "-2"])
    def test_coerced_page_below_one_is_clamped(self, page) -> None:
        request = PageRequest.of(page, 5)

        assert request.page == 1
        assert request.offset == 0

    @pytest.mark.parametrize("size", [0, -1])
    def test_page_size_below_one_is_rejected(self, size: int) -> None:
        with pytest.raises(ValidationError):
            PageRequest.of(1, size)

    def test_offset(self) -> None:
        assert PageRequest.of(3, 5).offset == 10

    def test_sort_direction_is_case_insensitive(self) -> None:
        assert SortSpec(field="amount", direction="ASC").descending is False


class TestAssembler:
    def test_flags_on_middle_page(self) -> None:
        pagination = compute_pagination(23, PageRequest.of(2, DEFAULT_PAGE_SIZE))

        assert pagination.total_pages == 3
        assert pagination.has_next_page is True
        assert pagination.has_previous_page is True

    def test_zero_items_gives_zero_pages(self) -> None:
        pagination = compute_pagination(0, PageRequest.of(1, DEFAULT_PAGE_SIZE))

        assert pagination.total_pages == 0
        assert pagination.has_next_page is False
        assert pagination.has_previous_page is False

    def test_response_serializes_camel_case(self) -> None:
        response = assemble([], 0, PageRequest.of(1, 5), {"status": "flagged"})

        payload = response.to_dict()

        assert payload["pagination"] == {
            "currentPage": 1,
            "pageSize": 5,
            "totalItems": 0,
            "totalPages": 0,
            "hasNextPage": False,
            "hasPreviousPage": False,
        }
        assert payload["filters"] == {"status": "flagged"}
        assert payload["error"] is None

    def test_empty_page_carries_error(self) -> None:
        response = empty_page(PageRequest.of(4, 5), {"userId": "u1"}, error="store unavailable")

        assert response.ok is False
        assert response.data == ()
        assert response.pagination.current_page == 4
        assert response.pagination.total_items == 0

    def test_response_is_immutable(self) -> None:
        response = assemble([], 0, PageRequest.of(1, 5))

        with pytest.raises(Exception):
            response.error = "changed"


class TestDecode:
    def test_user_defaults_are_applied(self) -> None:
        user = decode_record(User, {"id": "u1", "fullName": "Asha", "gender": None}, "users")

        assert user.full_name == "Asha"
        assert user.gender == "male"
        assert user.account_type == "savings"
        assert user.is_active is True
        assert user.recovery_questions == []

    def test_transaction_keeps_extra_fields(self) -> None:
        txn = decode_record(Transaction, {"id": "t1", "amount": 10, "merchant": "Cafe"}, "transactions")

        assert txn.amount == 10.0
        assert txn.model_extra == {"merchant": "Cafe"}

    def test_nested_risk_score_models(self) -> None:
        score = decode_record(
            RiskScore,
            {
                "id": "r1",
                "riskLevel": "high",
                "breakdown": {"locationRisk": 0.9},
                "alerts": [{"type": "location", "message": "new city"}],
            },
            "risk_scores",
        )

        assert score.breakdown.location_risk == 0.9
        assert score.breakdown.typing_risk == 0.0
        assert score.alerts[0].severity == "low"

    def test_behavior_profile_fingerprint_alias(self) -> None:
        profile = decode_record(
            BehaviorProfile,
            {"id": "p1", "userId": "u1", "DeviceFingerprint": {"model": "Pixel"}},
            "behaviour_profiles",
        )

        assert profile.device_fingerprint == {"model": "Pixel"}

    def test_incompatible_field_raises_decode_error(self) -> None:
        with pytest.raises(RecordDecodeError) as excinfo:
            decode_record(Transaction, {"id": "t1", "amount": "lots"}, "transactions")

        assert excinfo.value.record_id == "t1"
        assert excinfo.value.collection == "transactions"

    def test_missing_id_raises_decode_error(self) -> None:
        with pytest.raises(RecordDecodeError):
            decode_record(User, {"fullName": "nobody"}, "users")
