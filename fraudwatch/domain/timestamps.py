"""
Timestamp normalization for store records.

Telemetry producers write timestamps in several shapes: native datetimes,
SDK timestamp objects exposing a datetime conversion, `{seconds, nanoseconds}`
pairs, epoch milliseconds and ISO strings. `normalize` rewrites the first three
into epoch milliseconds, recursively through mappings and sequences, and
leaves everything else untouched. Malformed timestamp-like values never raise.

Usage:
    from fraudwatch.domain.timestamps import normalize

    normalize({"createdAt": {"seconds": 1700000000, "nanoseconds": 500000000}})
    # {"createdAt": 1700000000500}
"""

from __future__ import annotations

import numbers
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

# Zero-argument conversions exposed by common timestamp types
# (SDK timestamp wrappers, protobuf Timestamp, pandas Timestamp).
_DATETIME_CONVERTERS = ("to_datetime", "ToDatetime", "to_pydatetime")


def datetime_to_millis(value: datetime) -> int:
    """Epoch milliseconds for a datetime; naive values are treated as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _convert_via_method(value: Any) -> Optional[int]:
    for name in _DATETIME_CONVERTERS:
        method = getattr(value, name, None)
        if not callable(method):
            continue
        try:
            converted = method()
        except TypeError:
            # Requires arguments; not a calendar conversion.
            continue
        if isinstance(converted, datetime):
            return datetime_to_millis(converted)
    return None


def _seconds_nanos(value: Any) -> Optional[int]:
    if isinstance(value, Mapping):
        if "seconds" not in value or "nanoseconds" not in value:
            return None
        seconds, nanos = value["seconds"], value["nanoseconds"]
    elif hasattr(value, "seconds") and hasattr(value, "nanoseconds"):
        seconds, nanos = value.seconds, value.nanoseconds
    else:
        return None
    if not (_is_number(seconds) and _is_number(nanos)):
        return None
    return int(seconds * 1000) + int(nanos // 1_000_000)


def normalize(value: Any) -> Any:
    """Recursively convert timestamp encodings to epoch milliseconds."""
    if value is None or isinstance(value, (str, bytes, bool, numbers.Number)):
        return value

    if isinstance(value, datetime):
        return datetime_to_millis(value)

    millis = _convert_via_method(value)
    if millis is not None:
        return millis

    millis = _seconds_nanos(value)
    if millis is not None:
        return millis

    if isinstance(value, (list, tuple)):
        return [normalize(item) for item in value]

    if isinstance(value, Mapping):
        return {key: normalize(item) for key, item in value.items()}

    return value


def to_epoch_millis(value: Any) -> Optional[int]:
    """
    Best-effort comparable value for a timestamp field.

    Unlike `normalize`, ISO-8601 strings are parsed here; this is only used for
    comparisons (sorting, date windows), never to rewrite stored values.
    """
    if _is_number(value):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime_to_millis(datetime.fromisoformat(text))
        except ValueError:
            return None
    normalized = normalize(value)
    if _is_number(normalized):
        return int(normalized)
    return None


def json_default(value: Any) -> Any:
    """`json.dumps` hook writing native datetimes as `{seconds, nanoseconds}`."""
    if isinstance(value, datetime):
        millis = datetime_to_millis(value)
        return {"seconds": millis // 1000, "nanoseconds": (millis % 1000) * 1_000_000}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


__all__ = ["normalize", "to_epoch_millis", "datetime_to_millis", "json_default"]
