"""
Query constraint builder.

Splits an operator request into the constraints the document store can serve
from single-field indexes (one order-by, at most one scope equality) and the
residual filters evaluated in memory after the fetch.

Usage:
    from fraudwatch.query.builder import build

    plan = build("transactions", {"status": "flagged", "userId": "u1"})
    plan.pushed    # (Where("fromUserId", "u1"),)  order-by dropped, no index
    plan.residual  # (scope, status)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Literal, Mapping, Optional, Tuple, Union

from fraudwatch.domain.filters import BaseFilters, parse_filters
from fraudwatch.domain.models import SortSpec
from fraudwatch.errors import ValidationError
from fraudwatch.query.collections import CollectionSpec, Record, field_equals, get_collection
from fraudwatch.store.abstract import Constraint, OrderBy, Where
from fraudwatch.store.indexes import IndexCatalog

ResidualKind = Literal["scope", "exact", "search"]

_KIND_ORDER = {"scope": 0, "exact": 1, "search": 2}


@dataclass(frozen=True)
class ResidualFilter:
    """A filter evaluated against normalized records after the store query."""

    kind: ResidualKind
    key: str
    value: Any
    predicate: Callable[[Record, Any], bool]

    def matches(self, record: Record) -> bool:
        return self.predicate(record, self.value)


@dataclass(frozen=True)
class QueryPlan:
    collection: CollectionSpec
    filters: BaseFilters
    sort: SortSpec
    pushed: Tuple[Constraint, ...]
    residual: Tuple[ResidualFilter, ...]
    sort_in_memory: bool = False

    @property
    def name(self) -> str:
        return self.collection.name

    def without_order(self) -> "QueryPlan":
        """Same plan with the order-by dropped; the engine sorts in memory."""
        pushed = tuple(c for c in self.pushed if not isinstance(c, OrderBy))
        return replace(self, pushed=pushed, sort_in_memory=True)

    def apply_residual(self, records):
        """Records passing every residual filter, in their incoming order."""
        return [r for r in records if all(f.matches(r) for f in self.residual)]


def resolve_sort(spec: CollectionSpec, sort: Union[SortSpec, Mapping[str, Any], None]) -> SortSpec:
    """Validate a sort against the collection's sortable fields."""
    if sort is None:
        return spec.default_sort
    if not isinstance(sort, SortSpec):
        try:
            sort = SortSpec.model_validate(dict(sort))
        except ValueError as exc:
            raise ValidationError(f"Invalid sort for '{spec.name}': {exc}") from exc
    if sort.field not in spec.sortable_fields:
        allowed = ", ".join(sorted(spec.sortable_fields))
        raise ValidationError(
            f"Cannot sort '{spec.name}' by '{sort.field}' (allowed: {allowed})"
        )
    return sort


def build(
    collection: Union[str, CollectionSpec],
    filters: Union[BaseFilters, Mapping[str, Any], None] = None,
    sort: Union[SortSpec, Mapping[str, Any], None] = None,
    *,
    indexes: Optional[IndexCatalog] = None,
    push_scope: bool = True,
) -> QueryPlan:
    """
    Plan one paginated read.

    Parameters
    ----------
    collection : str or CollectionSpec
        Registered collection name.
    filters : mapping or filter model, optional
        Operator filters; unknown keys raise ValidationError.
    sort : SortSpec or mapping, optional
        Defaults to the collection's default sort.
    indexes : IndexCatalog, optional
        Composite indexes known to exist. Without a matching one, a scope
        equality plus a sort on another field keeps the sort in memory.
    push_scope : bool
        Push the scope equality to the store. When False every filter is
        residual.

    Returns
    -------
    QueryPlan
        Pushed constraints, residual filters (scope, exact, search) and sort.
    """
    spec = collection if isinstance(collection, CollectionSpec) else get_collection(collection)
    resolved = parse_filters(spec.filter_model, filters)
    sort_spec = resolve_sort(spec, sort)
    catalog = indexes or IndexCatalog()

    wheres = []
    residual = []
    if spec.scope is not None:
        attr, store_field = spec.scope
        value = getattr(resolved, attr)
        if value is not None:
            if push_scope:
                wheres.append(Where(store_field, value))
            else:
                residual.append(ResidualFilter("scope", attr, value, field_equals(store_field)))

    for attr, predicate in spec.exact.items():
        value = getattr(resolved, attr)
        if value is not None:
            residual.append(ResidualFilter("exact", attr, value, predicate))

    search = getattr(resolved, "search", None)
    if search:
        residual.append(
            ResidualFilter("search", "search", search, lambda record, term: spec.matches_search(record, term))
        )

    order = OrderBy(sort_spec.field, sort_spec.direction)
    sort_in_memory = catalog.missing_index(spec.name, wheres, [order]) is not None
    pushed: Tuple[Constraint, ...] = tuple(wheres) if sort_in_memory else (*wheres, order)

    residual.sort(key=lambda item: _KIND_ORDER[item.kind])
    return QueryPlan(
        collection=spec,
        filters=resolved,
        sort=sort_spec,
        pushed=pushed,
        residual=tuple(residual),
        sort_in_memory=sort_in_memory,
    )


__all__ = ["QueryPlan", "ResidualFilter", "build", "resolve_sort"]
