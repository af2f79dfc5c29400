"""
Request and response models shared by the query engine and the coordinator.

`SortSpec` and `PageRequest` describe what the operator asked for;
`PageResponse` is the immutable result handed back to the UI layer.
"""
from __future__ import annotations

from typing import Any, Dict, Generic, Literal, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from fraudwatch.errors import ValidationError

T = TypeVar("T")

SortDirection = Literal["asc", "desc"]


class _Frozen(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SortSpec(_Frozen):
    """Exactly one active sort per query."""

    field: str = Field(..., min_length=1)
    direction: SortDirection = "desc"

    @field_validator("direction", mode="before")
    @classmethod
    def _lower(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @property
    def descending(self) -> bool:
        return self.direction == "desc"


class PageRequest(_Frozen):
    """
    1-based page number and page size.

    `page` below 1 is clamped to 1; `page_size` below 1 is invalid.
    """

    page: int = 1
    page_size: int = 10

    @field_validator("page")
    @classmethod
    def _clamp_page(cls, value: int) -> int:
        return max(value, 1)

    @field_validator("page_size")
    @classmethod
    def _positive_size(cls, value: int) -> int:
        if value < 1:
            raise ValueError("pageSize must be >= 1")
        return value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @classmethod
    def of(cls, page: Any = 1, page_size: Any = 10) -> "PageRequest":
        """Build a PageRequest, raising the package's ValidationError on bad input."""
        try:
            return cls(page=page, page_size=page_size)
        except PydanticValidationError as exc:
            messages = "; ".join(str(error.get("msg")) for error in exc.errors())
            raise ValidationError(f"Invalid pagination parameters: {messages}") from exc


class Pagination(_Frozen):
    current_page: int
    page_size: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class PageResponse(_Frozen, Generic[T]):
    """
    One page of reconciled records.

    `pagination.total_items` is the count after in-memory filtering. `error`
    is set when the read was degraded to an empty result.
    """

    data: Tuple[T, ...] = ()
    pagination: Pagination
    filters: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready camelCase payload, the shape the dashboard consumes."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "SortDirection",
    "SortSpec",
    "PageRequest",
    "Pagination",
    "PageResponse",
]
