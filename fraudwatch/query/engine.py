"""
Fetch-and-reconcile engine.

Executes a QueryPlan against a document store and turns the fully
materialized result into one page:

1. run the pushed query; if the store demands a composite index, log how to
   create it and retry once without the order-by,
2. normalize every record's timestamps,
3. sort in memory when the order-by was not pushed,
4. apply residual filters (scope, exact, search),
5. count, slice and decode only the requested page.

Filtering never reorders records, so the page order is the order of the last
sort applied.
"""

from __future__ import annotations

from typing import List

from fraudwatch.domain.models import PageRequest, PageResponse
from fraudwatch.domain.records import decode_record
from fraudwatch.domain.timestamps import normalize
from fraudwatch.errors import IndexRequiredError
from fraudwatch.query.assembler import assemble
from fraudwatch.query.builder import QueryPlan
from fraudwatch.query.collections import Record
from fraudwatch.store.abstract import DocumentStore
from fraudwatch.utils.logging import get_logger
from fraudwatch.utils.ordering import sort_records

log = get_logger(__name__)


class FetchEngine:
    """Runs query plans against one document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _query(self, plan: QueryPlan) -> tuple[List[Record], QueryPlan]:
        try:
            return self.store.query(plan.name, plan.pushed), plan
        except IndexRequiredError as exc:
            log.warning(
                "Composite index required, retrying without order-by\n%s",
                exc.remediation(),
                extra={"collection": plan.name, "index_fields": exc.describe_fields()},
            )
            fallback = plan.without_order()
            return self.store.query(plan.name, fallback.pushed), fallback

    def fetch(self, plan: QueryPlan) -> List[Record]:
        """
        All records matching the plan, normalized and in sort order.

        Raises
        ------
        TransientStoreError
            If the store fails, or the unordered retry fails too.
        """
        raw, executed = self._query(plan)
        records = [normalize(record) for record in raw]
        if executed.sort_in_memory:
            records = sort_records(records, plan.sort.field, descending=plan.sort.descending)
        return plan.apply_residual(records)

    def run(self, plan: QueryPlan, page: PageRequest) -> PageResponse:
        """
        One page of decoded records.

        Raises
        ------
        TransientStoreError
            If the store read fails.
        RecordDecodeError
            If a record on the requested page cannot be decoded.
        """
        records = self.fetch(plan)
        window = records[page.offset : page.offset + page.page_size]
        spec = plan.collection
        data = [decode_record(spec.record_model, record, spec.name) for record in window]
        log.debug(
            "Page assembled",
            extra={
                "collection": spec.name,
                "page": page.page,
                "total_items": len(records),
                "sort_in_memory": plan.sort_in_memory,
            },
        )
        return assemble(data, len(records), page, plan.filters.active())


__all__ = ["FetchEngine"]
