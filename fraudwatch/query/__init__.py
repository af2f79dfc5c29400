"""
Query planning and reconciliation.

`build` turns an operator request into a QueryPlan, `FetchEngine` runs it
against a document store and returns a PageResponse.
"""

from fraudwatch.query.assembler import assemble, compute_pagination, empty_page
from fraudwatch.query.builder import QueryPlan, ResidualFilter, build, resolve_sort
from fraudwatch.query.collections import COLLECTIONS, CollectionSpec, get_collection
from fraudwatch.query.engine import FetchEngine

__all__ = [
    "COLLECTIONS",
    "CollectionSpec",
    "FetchEngine",
    "QueryPlan",
    "ResidualFilter",
    "assemble",
    "build",
    "compute_pagination",
    "empty_page",
    "get_collection",
    "resolve_sort",
]
