"""List query controller: paging, filters and search for one collection.

The controller is the single owner of a screen's list state. Every external
event (filter change, settled search, page request, reconciliation) enters
through one method, and ``items`` plus the pagination flags only ever change
in two places: :meth:`ListQueryController._apply` (a fetch completion that
survived the staleness check) and :meth:`ListQueryController.patch_item`.

Staleness rule: each fetch takes the next value of a monotonically increasing
request sequence. A completion, successful or not, is applied only when its
sequence number is still the latest issued one; anything older is dropped.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from calcana_sync.action_messages import (
    build_actionable_error,
    build_empty_list_message,
    build_results_found_notification,
)
from calcana_sync.errors import REMOTE_FAILURES, classify_remote_error
from calcana_sync.models import PageEnvelope, RequestState
from calcana_sync.query import FilterField, ListQuery, build_list_query, default_filters
from calcana_sync.ui_runtime import Notifier

logger = logging.getLogger(__name__)

FetchPage = Callable[[ListQuery], Awaitable[PageEnvelope]]


@dataclass(slots=True)
class ListState:
    """Everything a presentation layer needs to draw one list."""

    filters: dict[str, str] = field(default_factory=dict)
    search: str = ""
    page_index: int = 0
    items: list = field(default_factory=list)
    total_pages: int = 0
    total_count: int = 0
    is_first: bool = True
    is_last: bool = True
    request_state: RequestState = "idle"
    error: str | None = None


class ListQueryController:
    """Owns paging, filter and search state for one server-paginated collection."""

    def __init__(
        self,
        *,
        path: str,
        fields: Iterable[FilterField],
        page_size: int,
        fetch_page: FetchPage,
        notifier: Notifier,
        title: str,
        noun: str,
        noun_plural: str,
        item_id: Callable[[Any], int],
        search_param: str = "search",
    ) -> None:
        self.path = path
        self.fields = tuple(fields)
        self.page_size = page_size
        self._fields_by_name = {f.name: f for f in self.fields}
        self._fetch_page = fetch_page
        self._notifier = notifier
        self._title = title
        self._noun = noun
        self._noun_plural = noun_plural
        self._item_id = item_id
        self._search_param = search_param
        self._request_seq = 0
        self._in_flight: dict[int, ListQuery] = {}
        self.state = ListState(filters=default_filters(self.fields))

    # ── Derived state ────────────────────────────────────────────────────

    @property
    def is_loading(self) -> bool:
        return self.state.request_state == "loading"

    @property
    def in_flight(self) -> list[ListQuery]:
        return list(self._in_flight.values())

    def query_for_page(self, page: int) -> ListQuery:
        """Build the request for ``page`` under the current filters and search."""
        return build_list_query(
            self.path,
            self.fields,
            self.state.filters,
            page=page,
            size=self.page_size,
            search=self.state.search,
            search_param=self._search_param,
        )

    def current_query(self) -> ListQuery:
        return self.query_for_page(self.state.page_index)

    def empty_message(self) -> str:
        status = self.state.filters.get("status")
        return build_empty_list_message(
            self._noun_plural, search=self.state.search, status=status
        )

    # ── Events ───────────────────────────────────────────────────────────

    async def set_filter(self, name: str, value: str, *, fetch: bool = True) -> bool:
        """Change one criterion; resets to the first page and refetches."""
        return await self.set_filters({name: value}, fetch=fetch)

    async def set_filters(self, changes: Mapping[str, str], *, fetch: bool = True) -> bool:
        """Change several criteria at once. Returns whether anything changed."""
        for name in changes:
            if name not in self._fields_by_name:
                raise ValueError(f"Unknown filter {name!r} for {self.path}")
        changed = {k: v for k, v in changes.items() if self.state.filters.get(k) != v}
        if not changed:
            return False
        self.state.filters.update(changed)
        self.state.page_index = 0
        if fetch:
            await self.refresh()
        return True

    async def reset_filters(self, *, fetch: bool = True, announce: bool = False) -> None:
        """Restore every criterion and the search to its default and reload page 0."""
        self.state.filters = default_filters(self.fields)
        self.state.search = ""
        self.state.page_index = 0
        if fetch:
            await self.refresh(announce=announce)

    async def set_search(self, text: str) -> bool:
        """Apply a settled search term; resets to the first page and refetches."""
        text = text.strip()
        if text == self.state.search:
            return False
        self.state.search = text
        self.state.page_index = 0
        await self.refresh()
        return True

    async def set_page(self, page: int) -> bool:
        """Request page ``page``. Returns ``False`` when the request is a no-op.

        No-ops: pages outside ``[0, max(total_pages, 1))``, the page already
        loaded, and a page whose identical request is already in flight.
        """
        state = self.state
        if page < 0 or page >= max(state.total_pages, 1):
            logger.debug("Ignoring out-of-range page %d for %s", page, self.path)
            return False
        if page == state.page_index and state.request_state == "loaded":
            return False
        query = self.query_for_page(page)
        if query in self._in_flight.values():
            logger.debug("Page %d of %s already in flight", page, self.path)
            return False
        state.page_index = page
        return await self._fetch(query)

    async def next_page(self) -> bool:
        if self.state.is_last:
            return False
        return await self.set_page(self.state.page_index + 1)

    async def previous_page(self) -> bool:
        if self.state.is_first:
            return False
        return await self.set_page(self.state.page_index - 1)

    async def refresh(self, *, announce: bool = False) -> bool:
        """Fetch the current desired page. Returns whether a response was applied."""
        return await self._fetch(self.current_query(), announce=announce)

    async def reload_first_page(self, *, announce: bool = False) -> bool:
        """Jump back to page 0 under the current filters and fetch it."""
        self.state.page_index = 0
        return await self.refresh(announce=announce)

    def patch_item(self, item_id: int, **changes: Any) -> bool:
        """Replace one in-memory item with a copy carrying ``changes``.

        Pagination state is left untouched and no request is issued.
        """
        items = self.state.items
        for index, item in enumerate(items):
            if self._item_id(item) == item_id:
                patched = list(items)
                patched[index] = dataclasses.replace(item, **changes)
                self.state.items = patched
                return True
        return False

    def find_item(self, item_id: int) -> Any | None:
        for item in self.state.items:
            if self._item_id(item) == item_id:
                return item
        return None

    # ── Fetch pipeline ───────────────────────────────────────────────────

    async def _fetch(self, query: ListQuery, *, announce: bool = False) -> bool:
        self._request_seq += 1
        seq = self._request_seq
        self._in_flight[seq] = query
        self.state.request_state = "loading"
        logger.debug("Fetching %s (seq=%d): %s", self.path, seq, query.to_params())

        try:
            envelope = await self._fetch_page(query)
        except REMOTE_FAILURES as exc:
            if seq != self._request_seq:
                logger.debug("Dropped failure of superseded request %d for %s", seq, self.path)
                return False
            error = classify_remote_error(exc, f"the server did not return the {self._noun} list")
            self.state.request_state = "error"
            self.state.error = error.message
            self._notifier.notify(
                build_actionable_error(
                    f"load {self._noun_plural}",
                    why=error.message,
                    next_step="check the connection and try again",
                ),
                title=self._title,
                severity="error",
            )
            logger.warning("Loading %s failed: %s", self.path, exc, exc_info=True)
            return False
        finally:
            self._in_flight.pop(seq, None)

        # Ignore stale responses from requests superseded by newer ones.
        if seq != self._request_seq:
            logger.debug("Discarded stale response %d for %s", seq, self.path)
            return False

        if envelope.page_index > 0 and envelope.page_index >= max(envelope.total_pages, 1):
            # The page shrank away under us (e.g. its last record was deactivated).
            last_page = max(envelope.total_pages - 1, 0)
            logger.debug(
                "Page %d of %s is past the last page; reloading page %d",
                envelope.page_index,
                self.path,
                last_page,
            )
            self.state.page_index = last_page
            return await self._fetch(self.query_for_page(last_page), announce=announce)

        self._apply(envelope)
        if announce:
            self._notifier.notify(
                build_results_found_notification(
                    envelope.total_count, self._noun, self._noun_plural
                ),
                title=self._title,
            )
        return True

    def _apply(self, envelope: PageEnvelope) -> None:
        state = self.state
        state.items = list(envelope.items)
        state.total_pages = envelope.total_pages
        state.page_index = envelope.page_index
        state.is_first = envelope.is_first
        state.is_last = envelope.is_last
        state.total_count = envelope.total_count
        state.request_state = "loaded"
        state.error = None


__all__ = [
    "FetchPage",
    "ListQueryController",
    "ListState",
]
