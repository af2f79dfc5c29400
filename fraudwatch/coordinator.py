"""
Per-collection cache and request coordinator.

Holds, for each collection, the last successful PageResponse, the parameters
the UI currently asks for (filters, sort, page) and the loading/error status.
Parameter changes schedule fetches on the running asyncio loop:

- search edits are debounced (SEARCH_DEBOUNCE_MS, 500 ms by default),
- every other change fetches immediately and supersedes a pending debounce,
- results computed for a parameter snapshot that is no longer current are
  discarded (last-request-wins),
- a failed fetch keeps the previous data visible and only sets `ui.error`.

Mutators are plain methods and must be called from inside a running event
loop; `settle()` waits until the scheduled work has finished.

Usage:
    coordinator = Coordinator(AdminDataAccess(build_store()))
    coordinator.set_filters("transactions", {"status": "flagged"})
    await coordinator.settle("transactions")
    coordinator.cache("transactions").pagination.total_items
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set

from fraudwatch.config import Settings, get_settings
from fraudwatch.domain.filters import BaseFilters
from fraudwatch.domain.models import PageRequest, PageResponse, SortSpec
from fraudwatch.query.builder import resolve_sort
from fraudwatch.query.collections import get_collection
from fraudwatch.utils.logging import get_logger

log = get_logger(__name__)

SEARCH_KEYS = frozenset({"search"})


class LoadState(str, enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class Snapshot:
    """Parameter generation a fetch is computed for."""

    filters: BaseFilters
    sort: SortSpec
    page: PageRequest


@dataclass(frozen=True)
class UiStatus:
    is_loading: bool = False
    error: Optional[str] = None


Fetcher = Callable[[str, Snapshot], Awaitable[PageResponse]]


@dataclass
class CacheEntry:
    collection: str
    snapshot: Snapshot
    response: Optional[PageResponse] = None
    loaded: Optional[Snapshot] = None
    ui: UiStatus = field(default_factory=UiStatus)
    state: LoadState = LoadState.IDLE
    request_id: int = 0
    fetching: Optional[Snapshot] = None
    debounce: Optional[asyncio.Task] = None
    tasks: Set[asyncio.Task] = field(default_factory=set)

    def pending(self) -> List[asyncio.Task]:
        tasks = [task for task in self.tasks if not task.done()]
        if self.debounce is not None and not self.debounce.done():
            tasks.append(self.debounce)
        return tasks


class Coordinator:
    """
    Cache slots for every collection the UI touches.

    Parameters
    ----------
    data_access : AdminDataAccess, optional
        Used to build the default fetcher, which runs the blocking
        `paginate` call in a worker thread.
    fetcher : callable, optional
        `async (collection, snapshot) -> PageResponse`; overrides data_access.
    debounce_ms : int, optional
        Search debounce window; defaults to SEARCH_DEBOUNCE_MS.
    page_size : int, optional
        Initial page size; defaults to DEFAULT_PAGE_SIZE.
    """

    def __init__(
        self,
        data_access: Any = None,
        *,
        fetcher: Optional[Fetcher] = None,
        debounce_ms: Optional[int] = None,
        page_size: Optional[int] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        if fetcher is None:
            if data_access is None:
                raise ValueError("Coordinator needs a data_access or a fetcher")
            fetcher = _thread_fetcher(data_access)
        self._fetcher = fetcher
        self.debounce_seconds = (settings.search_debounce_ms if debounce_ms is None else debounce_ms) / 1000
        self.page_size = page_size or settings.default_page_size
        self._entries: Dict[str, CacheEntry] = {}

    # -------------------------------------------------------------- accessors

    def _defaults(self, collection: str) -> Snapshot:
        spec = get_collection(collection)
        return Snapshot(
            filters=spec.filter_model(),
            sort=spec.default_sort,
            page=PageRequest.of(1, self.page_size),
        )

    def state(self, collection: str) -> CacheEntry:
        """Cache slot for `collection`, created with default parameters on first access."""
        entry = self._entries.get(collection)
        if entry is None:
            entry = CacheEntry(collection=collection, snapshot=self._defaults(collection))
            self._entries[collection] = entry
        return entry

    def cache(self, collection: str) -> Optional[PageResponse]:
        return self.state(collection).response

    def ui(self, collection: str) -> UiStatus:
        return self.state(collection).ui

    # --------------------------------------------------------------- triggers

    def load(self, collection: str) -> None:
        """Fetch unless the current parameters are already loaded or being loaded."""
        entry = self.state(collection)
        if entry.debounce is not None and not entry.debounce.done():
            return
        if entry.fetching == entry.snapshot:
            return
        if entry.state is LoadState.READY and entry.loaded == entry.snapshot:
            return
        self._start_fetch(entry)

    def refresh(self, collection: str) -> None:
        entry = self.state(collection)
        self._cancel_debounce(entry)
        self._start_fetch(entry)

    def set_filters(self, collection: str, changes: Mapping[str, Any]) -> None:
        """
        Merge `changes` into the active filters and go back to page 1.

        Raises
        ------
        ValidationError
            On an unknown filter key or value; nothing is scheduled.
        """
        entry = self.state(collection)
        current = entry.snapshot
        filters = current.filters.merged(changes)
        snapshot = Snapshot(
            filters=filters,
            sort=current.sort,
            page=PageRequest.of(1, current.page.page_size),
        )
        if snapshot == current:
            return
        entry.snapshot = snapshot
        if set(changes) <= SEARCH_KEYS:
            self._schedule_debounced(entry)
        else:
            self._cancel_debounce(entry)
            self._start_fetch(entry)

    def set_sort(self, collection: str, field: str, direction: str = "desc") -> None:
        entry = self.state(collection)
        sort = resolve_sort(get_collection(collection), {"field": field, "direction": direction})
        self._apply(entry, Snapshot(entry.snapshot.filters, sort, entry.snapshot.page))

    def set_pagination(
        self,
        collection: str,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> None:
        """Change page and/or page size; a new page size restarts at page 1."""
        entry = self.state(collection)
        current = entry.snapshot.page
        if page_size is not None and page_size != current.page_size:
            request = PageRequest.of(1 if page is None else page, page_size)
        else:
            request = PageRequest.of(current.page if page is None else page, current.page_size)
        self._apply(entry, Snapshot(entry.snapshot.filters, entry.snapshot.sort, request))

    def reset_filters(self, collection: str) -> None:
        """Restore default filters, sort and page, then fetch."""
        entry = self.state(collection)
        defaults = self._defaults(collection)
        entry.snapshot = Snapshot(defaults.filters, defaults.sort, PageRequest.of(1, self.page_size))
        self._cancel_debounce(entry)
        self._start_fetch(entry)

    async def settle(self, collection: Optional[str] = None) -> None:
        """Wait for pending debounce timers and fetches to finish."""
        entries = [self.state(collection)] if collection else list(self._entries.values())
        while True:
            pending = [task for entry in entries for task in entry.pending()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # -------------------------------------------------------------- internals

    def _apply(self, entry: CacheEntry, snapshot: Snapshot) -> None:
        if snapshot == entry.snapshot:
            return
        entry.snapshot = snapshot
        self._cancel_debounce(entry)
        self._start_fetch(entry)

    def _schedule_debounced(self, entry: CacheEntry) -> None:
        self._cancel_debounce(entry)
        entry.debounce = asyncio.get_running_loop().create_task(self._debounced(entry))

    async def _debounced(self, entry: CacheEntry) -> None:
        await asyncio.sleep(self.debounce_seconds)
        entry.debounce = None
        self.load(entry.collection)

    @staticmethod
    def _cancel_debounce(entry: CacheEntry) -> None:
        if entry.debounce is not None:
            entry.debounce.cancel()
            entry.debounce = None

    def _start_fetch(self, entry: CacheEntry) -> None:
        entry.request_id += 1
        snapshot = entry.snapshot
        entry.fetching = snapshot
        entry.state = LoadState.LOADING
        entry.ui = UiStatus(is_loading=True, error=entry.ui.error)
        task = asyncio.get_running_loop().create_task(self._fetch(entry, snapshot, entry.request_id))
        entry.tasks.add(task)
        task.add_done_callback(entry.tasks.discard)

    async def _fetch(self, entry: CacheEntry, snapshot: Snapshot, request_id: int) -> None:
        response: Optional[PageResponse] = None
        try:
            response = await self._fetcher(entry.collection, snapshot)
            error = response.error
        except Exception as exc:
            log.exception("Fetch failed", extra={"collection": entry.collection})
            error = str(exc) or type(exc).__name__

        if request_id == entry.request_id and snapshot != entry.snapshot:
            # Nothing else is in flight for the current parameters.
            entry.fetching = None
        if request_id != entry.request_id or snapshot != entry.snapshot:
            log.debug(
                "Discarding stale result",
                extra={"collection": entry.collection, "request_id": request_id},
            )
            return

        entry.fetching = None
        if error is not None:
            entry.state = LoadState.ERROR
            entry.ui = UiStatus(is_loading=False, error=error)
            return
        entry.response = response
        entry.loaded = snapshot
        entry.state = LoadState.READY
        entry.ui = UiStatus(is_loading=False, error=None)


def _thread_fetcher(data_access: Any) -> Fetcher:
    async def _fetch(collection: str, snapshot: Snapshot) -> PageResponse:
        return await asyncio.to_thread(
            data_access.paginate,
            collection,
            snapshot.filters,
            snapshot.sort,
            snapshot.page.page,
            snapshot.page.page_size,
        )

    return _fetch


__all__ = [
    "CacheEntry",
    "Coordinator",
    "Fetcher",
    "LoadState",
    "Snapshot",
    "UiStatus",
]
