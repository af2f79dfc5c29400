"""
Paginated response assembly. Pure functions, no I/O.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Mapping, Optional, Sequence

from fraudwatch.domain.models import PageRequest, PageResponse, Pagination


def compute_pagination(total_items: int, page: PageRequest) -> Pagination:
    total_pages = math.ceil(total_items / page.page_size) if total_items else 0
    return Pagination(
        current_page=page.page,
        page_size=page.page_size,
        total_items=total_items,
        total_pages=total_pages,
        has_next_page=page.page < total_pages,
        has_previous_page=page.page > 1,
    )


def assemble(
    data: Sequence[Any],
    total_items: int,
    page: PageRequest,
    filters: Optional[Mapping[str, Any]] = None,
) -> PageResponse:
    """Package one page slice with its pagination block and echoed filters."""
    return PageResponse(
        data=tuple(data),
        pagination=compute_pagination(total_items, page),
        filters=dict(filters or {}),
    )


def empty_page(
    page: PageRequest,
    filters: Optional[Mapping[str, Any]] = None,
    error: Optional[str] = None,
) -> PageResponse:
    """Zero-total response used when a read is degraded."""
    pagination = Pagination(
        current_page=page.page,
        page_size=page.page_size,
        total_items=0,
        total_pages=0,
        has_next_page=False,
        has_previous_page=False,
    )
    filters_echo: Dict[str, Any] = dict(filters or {})
    return PageResponse(data=(), pagination=pagination, filters=filters_echo, error=error)


__all__ = ["assemble", "compute_pagination", "empty_page"]
