"""Cursor pagination for the active query and the scroll-proximity trigger.

Updates:
  v0.2.1 - 2026-10-18 - Replace the load_more assert with a guard; keep the cursor on any failure.
  v0.2.0 - 2026-10-16 - Discard late pages by query token.
  v0.1.0 - 2026-10-14 - Introduce IncrementalLoader with load_more guards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from .executor import SearchState

if TYPE_CHECKING:
    from models.prompt_model import Prompt

    from .executor import SearchExecutor, SearchOutcome
    from .query import Query

logger = logging.getLogger(__name__)

DEFAULT_LOAD_MORE_THRESHOLD_PX = 100


@dataclass(slots=True)
class LoadState:
    """Pagination flags for the current query."""

    is_loading: bool = False
    is_fetching_more: bool = False
    has_next_page: bool = False
    cursor: str | None = None
    error: str | None = None


class ProximityTrigger:
    """Fire once when the scroll position comes within *threshold_px* of the end."""

    def __init__(self, threshold_px: float = DEFAULT_LOAD_MORE_THRESHOLD_PX) -> None:
        if threshold_px < 0:
            raise ValueError("threshold_px cannot be negative")
        self.threshold_px = threshold_px
        self._armed = True

    def update(self, scroll_offset: float, viewport_height: float, content_height: float) -> bool:
        """Return ``True`` on the update that crosses into the threshold zone."""
        distance = content_height - (scroll_offset + viewport_height)
        if distance > self.threshold_px:
            self._armed = True
            return False
        if not self._armed:
            return False
        self._armed = False
        return True

    def rearm(self) -> None:
        self._armed = True


class IncrementalLoader:
    """Accumulate pages for the active query and fetch the next one on demand."""

    def __init__(self, executor: SearchExecutor) -> None:
        """Attach to *executor* and follow the outcomes it publishes."""
        self._executor = executor
        self._state = LoadState()
        self._records: list[Prompt] = []
        self._total_count: int | None = None
        self._fingerprint: str | None = None
        self._query: Query | None = None
        self._token = 0
        self._unsubscribe = executor.subscribe(self.accept)

    @property
    def state(self) -> LoadState:
        return replace(self._state)

    @property
    def records(self) -> list[Prompt]:
        return list(self._records)

    @property
    def total_count(self) -> int:
        """Return the remote total when known, else the number of loaded records."""
        if self._total_count is None:
            return len(self._records)
        return max(self._total_count, len(self._records))

    @property
    def can_load_more(self) -> bool:
        state = self._state
        return (
            state.has_next_page
            and state.cursor is not None
            and not state.is_loading
            and not state.is_fetching_more
            and self._query is not None
        )

    def begin(self, fingerprint: str | None = None, query: Query | None = None) -> None:
        """Mark a new query as loading; pages for the previous query become stale."""
        self._token += 1
        self._fingerprint = fingerprint
        self._query = query
        self._state = LoadState(is_loading=True)

    def accept(self, outcome: SearchOutcome) -> None:
        """Replace the loaded records with the first page of *outcome*."""
        if outcome.state is SearchState.SUPERSEDED:
            return
        self._token += 1
        self._fingerprint = outcome.fingerprint
        self._query = outcome.query
        self._records = list(outcome.records)
        self._total_count = outcome.total_count
        self._state = LoadState(
            has_next_page=outcome.has_next_page,
            cursor=outcome.page_cursor,
            error=outcome.error,
        )

    def upsert(self, record: Prompt) -> None:
        """Swap in a locally edited copy of a loaded record."""
        for index, existing in enumerate(self._records):
            if existing.id == record.id:
                self._records[index] = record
                return

    def discard(self, record_id: str) -> int | None:
        """Remove a loaded record and return the index it occupied."""
        for index, existing in enumerate(self._records):
            if existing.id == record_id:
                del self._records[index]
                return index
        return None

    def restore(self, record: Prompt, index: int) -> None:
        self._records.insert(min(index, len(self._records)), record)

    def reset(self) -> None:
        """Forget every loaded page."""
        self._token += 1
        self._records = []
        self._total_count = None
        self._fingerprint = None
        self._query = None
        self._state = LoadState()

    async def load_more(self) -> bool:
        """Fetch and append the next page; returns ``True`` when records were appended."""
        query = self._query
        if query is None or not self.can_load_more:
            return False
        token = self._token
        key = self._fingerprint
        cursor = self._state.cursor
        cache = self._executor.cache
        generation = cache.generation
        self._state.is_fetching_more = True
        self._state.error = None
        try:
            page = await self._executor.source.search(
                query, cursor=cursor, limit=self._executor.page_size
            )
        except Exception as exc:  # noqa: BLE001 - collaborator failures keep the cursor
            if token != self._token:
                return False
            logger.warning(
                "Failed to load next page",
                extra={"fingerprint": key, "cursor": cursor, "error": str(exc)},
            )
            self._state.is_fetching_more = False
            self._state.error = str(exc) or exc.__class__.__name__
            self._executor.notices.warn(
                "More results unavailable",
                f"Could not load more prompts ({exc})",
                fingerprint=key,
            )
            return False

        if token != self._token:
            logger.debug("Discarded page for a previous query", extra={"fingerprint": key})
            return False

        records = list(page.records)
        self._records.extend(records)
        if page.total_count is not None:
            self._total_count = page.total_count
        self._state.cursor = page.next_cursor
        self._state.has_next_page = page.has_next_page
        self._state.is_fetching_more = False
        if key is not None:
            cache.append_page(
                key,
                records,
                page_cursor=page.next_cursor,
                has_next_page=page.has_next_page,
                total_count=page.total_count,
                generation=generation,
            )
        self._executor.remember(records)
        return bool(records)

    def close(self) -> None:
        self._unsubscribe()


__all__ = ["DEFAULT_LOAD_MORE_THRESHOLD_PX", "IncrementalLoader", "LoadState", "ProximityTrigger"]
