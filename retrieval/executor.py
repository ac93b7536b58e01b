"""Debounced, sequenced search execution with cache reuse and local fallback.

Each logical search session moves through ``IDLE -> DEBOUNCING -> IN_FLIGHT
-> RESOLVED | FAILED | SUPERSEDED``. Only the newest request may apply its
result: every request carries a sequence number and responses from older
requests are dropped. The cache write and the emission for a response happen
in the same event-loop turn as the ``await`` that produced it, so no
invalidation can interleave between them.

Updates:
  v0.3.1 - 2026-10-18 - Fall back locally on any source failure; extend suggestions incrementally.
  v0.3.0 - 2026-10-16 - Record search history and keep a local record store for fallback.
  v0.2.0 - 2026-10-15 - Guard cache writes with the invalidation generation.
  v0.1.0 - 2026-10-13 - Introduce SearchExecutor state machine with trailing-edge debounce.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from models.filter_state import FilterState

from .filtering import SuggestionIndex, filter_records
from .history import SearchHistory
from .notices import NoticeCenter
from .query import compose_query, fingerprint
from .remote import ANONYMOUS, DEFAULT_PAGE_SIZE

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from models.prompt_model import Prompt

    from .cache import CacheEntry, ResultCache
    from .query import Query
    from .remote import AuthContext, PromptSource

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3


class SearchState(str, Enum):
    """Lifecycle of the current search session."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    RESOLVED = "resolved"
    FAILED = "failed"
    SUPERSEDED = "superseded"


@dataclass(slots=True)
class SearchOutcome:
    """Result of one executed search request."""

    state: SearchState
    query: Query
    fingerprint: str
    sequence: int
    records: list[Prompt] = field(default_factory=list)
    page_cursor: str | None = None
    has_next_page: bool = False
    total_count: int | None = None
    from_cache: bool = False
    error: str | None = None

    @classmethod
    def from_entry(cls, entry: CacheEntry, fingerprint: str, sequence: int) -> SearchOutcome:
        return cls(
            state=SearchState.RESOLVED,
            query=entry.query,
            fingerprint=fingerprint,
            sequence=sequence,
            records=list(entry.records),
            page_cursor=entry.page_cursor,
            has_next_page=entry.has_next_page,
            total_count=entry.total_count,
            from_cache=True,
        )


class SearchExecutor:
    """Turn filter changes into remote searches and publish their outcomes."""

    def __init__(
        self,
        source: PromptSource,
        cache: ResultCache,
        *,
        auth: AuthContext = ANONYMOUS,
        notices: NoticeCenter | None = None,
        history: SearchHistory | None = None,
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        page_size: int = DEFAULT_PAGE_SIZE,
        suggestion_limit: int = 5,
    ) -> None:
        """Store collaborators and tuning knobs for the search session."""
        if debounce_seconds < 0:
            raise ValueError("debounce_seconds cannot be negative")
        if page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self.source = source
        self.cache = cache
        self.auth = auth
        self.notices = notices or NoticeCenter()
        self.history = history or SearchHistory()
        self.page_size = page_size
        self._debounce_seconds = debounce_seconds
        self._suggestion_limit = suggestion_limit
        self._filter = FilterState()
        self._state = SearchState.IDLE
        self._sequence = 0
        self._active: tuple[Query, str] | None = None
        self._debounce_task: asyncio.Task[SearchOutcome | None] | None = None
        self._tasks: set[asyncio.Task[SearchOutcome]] = set()
        self._subscribers: list[Callable[[SearchOutcome], None]] = []
        self._local: dict[str, Prompt] = {}
        self._index = SuggestionIndex()
        self._suggestions: list[str] = []

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------
    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def is_busy(self) -> bool:
        """Return ``True`` while a search is debouncing or in flight."""
        return self._state in {SearchState.DEBOUNCING, SearchState.IN_FLIGHT}

    @property
    def latest_sequence(self) -> int:
        return self._sequence

    @property
    def filter_state(self) -> FilterState:
        """Return a copy of the filter state driving the next search."""
        return self._filter.snapshot()

    @property
    def active_query(self) -> Query | None:
        return self._active[0] if self._active else None

    @property
    def active_fingerprint(self) -> str | None:
        return self._active[1] if self._active else None

    @property
    def suggestions(self) -> list[str]:
        return list(self._suggestions)

    @property
    def suggestion_index(self) -> SuggestionIndex:
        return self._index

    @property
    def local_records(self) -> list[Prompt]:
        """Return every record held locally, in first-seen order."""
        return list(self._local.values())

    def subscribe(self, callback: Callable[[SearchOutcome], None]) -> Callable[[], None]:
        """Register *callback* for applied outcomes; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Local record store
    # ------------------------------------------------------------------
    def remember(self, records: Iterable[Prompt]) -> None:
        """Add or refresh locally held snapshots and index their suggestions.

        New records extend the suggestion index in place; it is rebuilt only
        when a held record was replaced by a different version.
        """
        added: list[Prompt] = []
        replaced = False
        for record in records:
            existing = self._local.get(record.id)
            if existing is None:
                added.append(record)
            elif existing != record:
                replaced = True
            self._local[record.id] = record
        if replaced:
            self._index.rebuild(self._local.values())
        elif added:
            self._index.add(added)

    def forget(self, record_id: str) -> Prompt | None:
        """Drop a locally held snapshot and return it."""
        removed = self._local.pop(record_id, None)
        if removed is not None:
            self._index.rebuild(self._local.values())
        return removed

    def local_record(self, record_id: str) -> Prompt | None:
        return self._local.get(record_id)

    def clear_local(self) -> None:
        self._local.clear()
        self._index.rebuild(())
        self._suggestions = []

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def set_search_text(self, text: str) -> None:
        """Update the search text; the request fires on the trailing edge of the debounce."""
        self._filter.search_text = text
        self._suggestions = self._index.suggest(text, self._suggestion_limit)
        self._cancel_debounce()
        query = compose_query(self._filter)
        self._state = SearchState.DEBOUNCING
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounced(query))

    def set_filter(self, state: FilterState) -> asyncio.Task[SearchOutcome]:
        """Replace the facet selection and search immediately."""
        self._filter = state.snapshot()
        self._cancel_debounce()
        return self._spawn(compose_query(self._filter))

    def refresh(self) -> asyncio.Task[SearchOutcome] | None:
        """Re-issue the active query, superseding anything still in flight."""
        if self._active is None:
            return None
        self._cancel_debounce()
        return self._spawn(self._active[0])

    async def drain(self) -> None:
        """Wait until no debounce timer or request is pending."""
        while True:
            pending = [task for task in self._pending_tasks() if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Cancel pending work and return to idle."""
        pending = list(self._pending_tasks())
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._debounce_task = None
        self._tasks.clear()
        self._state = SearchState.IDLE

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    async def execute(self, query: Query) -> SearchOutcome:
        """Run *query*, serving from cache when possible, and publish the outcome."""
        key = fingerprint(query)
        self._sequence += 1
        sequence = self._sequence
        self._active = (query, key)

        if not self.auth.is_authenticated:
            outcome = SearchOutcome(SearchState.RESOLVED, query, key, sequence)
            return self._apply(outcome)

        cached = self.cache.get(key, query)
        if cached is not None:
            logger.debug("Search served from cache", extra={"fingerprint": key})
            return self._apply(SearchOutcome.from_entry(cached, key, sequence))

        generation = self.cache.generation
        self._state = SearchState.IN_FLIGHT
        try:
            page = await self.source.search(query, cursor=None, limit=self.page_size)
        except Exception as exc:  # noqa: BLE001 - collaborator failures fall back locally
            if sequence != self._sequence:
                return self._superseded(query, key, sequence)
            return self._apply(self._fallback(query, key, sequence, exc))

        if sequence != self._sequence:
            return self._superseded(query, key, sequence)

        entry = self.cache.new_entry(
            query,
            page.records,
            page_cursor=page.next_cursor,
            has_next_page=page.has_next_page,
            total_count=page.total_count,
        )
        self.cache.put(key, entry, generation=generation)
        self.remember(page.records)
        if query.text:
            self.history.add(
                query.text,
                query.to_payload(),
                page.total_count if page.total_count is not None else len(page.records),
            )
        outcome = SearchOutcome(
            state=SearchState.RESOLVED,
            query=query,
            fingerprint=key,
            sequence=sequence,
            records=list(page.records),
            page_cursor=page.next_cursor,
            has_next_page=page.has_next_page,
            total_count=page.total_count,
        )
        return self._apply(outcome)

    def _fallback(
        self,
        query: Query,
        key: str,
        sequence: int,
        exc: BaseException,
    ) -> SearchOutcome:
        logger.warning(
            "Remote search failed; filtering locally held prompts",
            extra={"fingerprint": key, "error": str(exc)},
        )
        records = filter_records(self._local.values(), query)
        message = f"Showing {len(records)} locally available prompts ({exc})"
        self.notices.warn("Search unavailable", message, fingerprint=key)
        return SearchOutcome(
            state=SearchState.FAILED,
            query=query,
            fingerprint=key,
            sequence=sequence,
            records=records,
            total_count=len(records),
            error=str(exc) or exc.__class__.__name__,
        )

    def _superseded(self, query: Query, key: str, sequence: int) -> SearchOutcome:
        logger.debug(
            "Discarded superseded search response",
            extra={"fingerprint": key, "sequence": sequence, "latest": self._sequence},
        )
        return SearchOutcome(SearchState.SUPERSEDED, query, key, sequence)

    def _apply(self, outcome: SearchOutcome) -> SearchOutcome:
        self._state = outcome.state
        for callback in list(self._subscribers):
            callback(outcome)
        return outcome

    async def _debounced(self, query: Query) -> SearchOutcome | None:
        await asyncio.sleep(self._debounce_seconds)
        self._debounce_task = None
        return await self._spawn(query)

    def _spawn(self, query: Query) -> asyncio.Task[SearchOutcome]:
        task = asyncio.get_running_loop().create_task(self.execute(query))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _pending_tasks(self) -> list[asyncio.Future[Any]]:
        tasks: list[asyncio.Future[Any]] = list(self._tasks)
        if self._debounce_task is not None:
            tasks.append(self._debounce_task)
        return tasks

    def _cancel_debounce(self) -> None:
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None


__all__ = ["DEFAULT_DEBOUNCE_SECONDS", "SearchExecutor", "SearchOutcome", "SearchState"]
