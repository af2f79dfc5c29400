from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fraudwatch.domain.timestamps import json_default, normalize, to_epoch_millis

SECONDS = 1_700_000_000
EXPECTED_MILLIS = 1_700_000_000_500


class _SdkTimestamp:
    """Mimics an SDK timestamp wrapper exposing a calendar conversion."""

    def __init__(self, moment: datetime) -> None:
        self._moment = moment

    def to_datetime(self) -> datetime:
        return self._moment


class _SecondsNanos:
    def __init__(self, seconds, nanoseconds) -> None:
        self.seconds = seconds
        self.nanoseconds = nanoseconds


class _NeedsArgs:
    def to_datetime(self, tz):
        raise AssertionError("must not be called")


def test_seconds_nanoseconds_mapping_becomes_millis() -> None:
    record = {"createdAt": {"seconds": SECONDS, "nanoseconds": 500_000_000}}

    assert normalize(record) == {"createdAt": EXPECTED_MILLIS}


def test_seconds_nanoseconds_floor_sub_millisecond() -> None:
    assert normalize({"seconds": SECONDS, "nanoseconds": 999_999}) == SECONDS * 1000


def test_seconds_nanoseconds_attributes() -> None:
    assert normalize(_SecondsNanos(SECONDS, 500_000_000)) == EXPECTED_MILLIS


def test_native_datetime_becomes_millis() -> None:
    moment = datetime(2023, 11, 14, 22, 13, 20, 500_000, tzinfo=timezone.utc)

    assert normalize(moment) == EXPECTED_MILLIS


def test_naive_datetime_is_treated_as_utc() -> None:
    assert normalize(datetime(1970, 1, 1, 0, 0, 1)) == 1000


def test_aware_datetime_in_other_zone() -> None:
    moment = datetime(1970, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))

    assert normalize(moment) == 0


def test_object_with_calendar_conversion() -> None:
    moment = datetime(2023, 11, 14, 22, 13, 20, 500_000, tzinfo=timezone.utc)

    assert normalize(_SdkTimestamp(moment)) == EXPECTED_MILLIS


def test_conversion_requiring_arguments_falls_through() -> None:
    value = _NeedsArgs()

    assert normalize(value) is value


def test_nested_lists_and_mappings_preserve_shape() -> None:
    record = {
        "id": "s1",
        "touchPatterns": [
            {"startTime": {"seconds": 1, "nanoseconds": 0}, "pressure": 0.5},
            {"startTime": 42, "pressure": 0.7},
        ],
        "meta": {"tags": ("a", "b"), "flag": True, "missing": None},
    }

    assert normalize(record) == {
        "id": "s1",
        "touchPatterns": [
            {"startTime": 1000, "pressure": 0.5},
            {"startTime": 42, "pressure": 0.7},
        ],
        "meta": {"tags": ["a", "b"], "flag": True, "missing": None},
    }


@pytest.mark.parametrize(
    "value",
    [
        {"seconds": SECONDS},
        {"nanoseconds": 5},
        {"seconds": "soon", "nanoseconds": 0},
        {"seconds": True, "nanoseconds": 0},
        "2023-11-14T22:13:20Z",
        12.5,
        None,
        False,
    ],
)
def test_malformed_or_plain_values_pass_through(value) -> None:
    assert normalize(value) == value


def test_normalize_is_idempotent() -> None:
    record = {
        "createdAt": {"seconds": SECONDS, "nanoseconds": 500_000_000},
        "updatedAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "history": [{"seconds": 10, "nanoseconds": 1_000_000}, "text"],
    }

    once = normalize(record)

    assert normalize(once) == once


def test_normalize_does_not_mutate_input() -> None:
    record = {"createdAt": {"seconds": SECONDS, "nanoseconds": 0}}

    normalize(record)

    assert record == {"createdAt": {"seconds": SECONDS, "nanoseconds": 0}}


def test_to_epoch_millis_parses_iso_strings() -> None:
    assert to_epoch_millis("2023-11-14T22:13:20.500Z") == EXPECTED_MILLIS
    assert to_epoch_millis("2023-11-14T22:13:20.500+00:00") == EXPECTED_MILLIS


def test_to_epoch_millis_rejects_free_text() -> None:
    assert to_epoch_millis("Groceries") is None
    assert to_epoch_millis(None) is None
    assert to_epoch_millis(True) is None


def test_to_epoch_millis_accepts_encoded_shapes() -> None:
    assert to_epoch_millis({"seconds": SECONDS, "nanoseconds": 500_000_000}) == EXPECTED_MILLIS
    assert to_epoch_millis(EXPECTED_MILLIS) == EXPECTED_MILLIS


def test_json_default_writes_seconds_nanoseconds() -> None:
    moment = datetime(2023, 11, 14, 22, 13, 20, 500_000, tzinfo=timezone.utc)

    encoded = json_default(moment)

    assert encoded == {"seconds": SECONDS, "nanoseconds": 500_000_000}
    assert normalize(encoded) == EXPECTED_MILLIS


def test_json_default_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        json_default(object())
