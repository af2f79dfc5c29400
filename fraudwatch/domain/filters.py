"""
Filter specifications, one closed model per collection.

Each model accepts the camelCase keys used by the dashboard (`statusFilter`,
`behaviorFilter`, ...) as well as the snake_case attribute names. Unknown keys
are rejected. Empty strings and the sentinel `"all"` mean "no constraint" and
are stored as `None`.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from fraudwatch.errors import ValidationError

ALL = "all"


class BaseFilters(BaseModel):
    """Common behaviour for every collection's filter set."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
        str_strip_whitespace=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def _unset_sentinels(cls, value: Any) -> Any:
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or stripped.lower() == ALL:
                return None
        return value

    def active(self) -> Dict[str, Any]:
        """Filters that actually constrain the result, keyed by camelCase name."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def merged(self, changes: Mapping[str, Any]) -> "BaseFilters":
        """Return a copy with `changes` applied (validated, unknown keys rejected)."""
        fields = type(self).model_fields
        data = self.model_dump(by_alias=True)
        for key, value in changes.items():
            field = fields.get(key)
            data[(field.alias or key) if field is not None else key] = value
        return parse_filters(type(self), data)


class UserFilters(BaseFilters):
    search: Optional[str] = None
    status_filter: Optional[str] = None
    verification_filter: Optional[Literal["verified", "unverified"]] = None


class TransactionFilters(BaseFilters):
    search: Optional[str] = None
    status: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    user_id: Optional[str] = None


class SessionFilters(BaseFilters):
    search: Optional[str] = None
    behavior_filter: Optional[Literal["motion", "touch", "typing"]] = None
    user_id: Optional[str] = None


class RiskScoreFilters(BaseFilters):
    search: Optional[str] = None
    risk_level: Optional[str] = None
    user_id: Optional[str] = None


class BehaviorProfileFilters(BaseFilters):
    user_id: Optional[str] = None


FilterSpec = Union[
    UserFilters,
    TransactionFilters,
    SessionFilters,
    RiskScoreFilters,
    BehaviorProfileFilters,
]


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "filters"
        if error.get("type") == "extra_forbidden":
            parts.append(f"unknown filter key '{location}'")
        else:
            parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)


def parse_filters(
    model: type[BaseFilters],
    filters: Union[BaseFilters, Mapping[str, Any], None],
) -> BaseFilters:
    """
    Validate a filter mapping against `model`.

    Raises
    ------
    ValidationError
        On unknown keys, values outside a closed set, or a filter object of
        another collection.
    """
    if filters is None:
        return model()
    if isinstance(filters, BaseFilters):
        if not isinstance(filters, model):
            raise ValidationError(
                f"Expected {model.__name__}, got {type(filters).__name__}"
            )
        return filters
    try:
        return model.model_validate(dict(filters))
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {_describe(exc)}") from exc


__all__ = [
    "ALL",
    "BaseFilters",
    "UserFilters",
    "TransactionFilters",
    "SessionFilters",
    "RiskScoreFilters",
    "BehaviorProfileFilters",
    "FilterSpec",
    "parse_filters",
]
