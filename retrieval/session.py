"""Presentation-facing façade over the retrieval pipeline.

A :class:`RetrievalSession` owns one executor, loader, virtualizer, and
proximity trigger and exposes only what a view needs: the visible window,
the loading flags, filter mutators, and derived metrics.

Updates:
  v0.2.1 - 2026-10-18 - Resync the item count after optimistic edits; release the source on close.
  v0.2.0 - 2026-10-17 - Add logout, mutations, and category insights.
  v0.1.0 - 2026-10-15 - Introduce RetrievalSession façade.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .filtering import FacetOptions, facet_options, highlight_matches
from .loader import IncrementalLoader, ProximityTrigger
from .mutations import PromptMutationService
from .query import compose_query, fingerprint
from .remote import ANONYMOUS, AuthContext
from .scoring import (
    CategoryInsights,
    CategoryStats,
    ScoredPrompt,
    category_insights,
    category_stats,
    top_performers,
)
from .virtualization import Virtualizer

if TYPE_CHECKING:
    import asyncio

    from models.filter_state import FilterState
    from models.prompt_model import Prompt

    from .cache import CacheStats
    from .executor import SearchExecutor, SearchOutcome
    from .history import SearchHistory
    from .notices import NoticeCenter
    from .virtualization import ViewportWindow

logger = logging.getLogger("prompt_library.session")


class RetrievalSession:
    """Drive searches, pagination, and windowing for one signed-in user."""

    def __init__(
        self,
        executor: SearchExecutor,
        *,
        virtualizer: Virtualizer | None = None,
        trigger: ProximityTrigger | None = None,
    ) -> None:
        self._executor = executor
        self._loader = IncrementalLoader(executor)
        self._virtualizer = virtualizer or Virtualizer()
        self._trigger = trigger or ProximityTrigger()
        self._mutations = PromptMutationService(
            executor,
            self._loader,
            refresh=self._refresh,
            on_local_change=self._sync_item_count,
        )
        self._unsubscribe = executor.subscribe(self._on_outcome)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def executor(self) -> SearchExecutor:
        return self._executor

    @property
    def loader(self) -> IncrementalLoader:
        return self._loader

    @property
    def virtualizer(self) -> Virtualizer:
        return self._virtualizer

    @property
    def mutations(self) -> PromptMutationService:
        return self._mutations

    @property
    def notices(self) -> NoticeCenter:
        return self._executor.notices

    @property
    def history(self) -> SearchHistory:
        return self._executor.history

    @property
    def records(self) -> list[Prompt]:
        """Return every loaded record for the active query."""
        return self._loader.records

    @property
    def window(self) -> ViewportWindow:
        return self._virtualizer.window()

    @property
    def visible_records(self) -> list[Prompt]:
        """Return only the records inside the current viewport window."""
        window = self._virtualizer.window()
        return self._loader.records[window.start : window.end]

    @property
    def total_count(self) -> int:
        return self._loader.total_count

    @property
    def is_loading(self) -> bool:
        return self._loader.state.is_loading

    @property
    def is_fetching_more(self) -> bool:
        return self._loader.state.is_fetching_more

    @property
    def has_next_page(self) -> bool:
        return self._loader.state.has_next_page

    @property
    def error(self) -> str | None:
        return self._loader.state.error

    @property
    def filter_state(self) -> FilterState:
        return self._executor.filter_state

    @property
    def suggestions(self) -> list[str]:
        return self._executor.suggestions

    def suggest_tags(self, text: str, limit: int = 10) -> list[str]:
        return self._executor.suggestion_index.suggest_tags(text, limit)

    def cache_stats(self) -> CacheStats:
        return self._executor.cache.stats()

    def facet_options(self) -> FacetOptions:
        return facet_options(self._executor.local_records)

    def highlight(self, text: str) -> str:
        """Mark occurrences of the current search text inside *text*."""
        return highlight_matches(text, self._executor.filter_state.search_text)

    def top_performers(self, limit: int = 5) -> list[ScoredPrompt]:
        return top_performers(self._loader.records, limit)

    def category_stats(self) -> list[CategoryStats]:
        return category_stats(self._loader.records)

    def category_insights(self, category: str | None = None) -> CategoryInsights:
        selected = category if category is not None else self._executor.filter_state.category
        return category_insights(self._loader.records, selected)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------
    def set_filter(self, state: FilterState) -> asyncio.Task[SearchOutcome]:
        """Apply new facet selections and search immediately."""
        query = compose_query(state)
        self._loader.begin(fingerprint(query), query)
        return self._executor.set_filter(state)

    def set_search_text(self, text: str) -> None:
        """Update the search text; the search itself is debounced."""
        state = self._executor.filter_state
        state.search_text = text
        query = compose_query(state)
        self._loader.begin(fingerprint(query), query)
        self._executor.set_search_text(text)

    async def load_more(self) -> bool:
        appended = await self._loader.load_more()
        if appended:
            self._sync_item_count()
        return appended

    async def update_viewport(self, scroll_offset: float, viewport_height: float) -> ViewportWindow:
        """Record the scroll position, loading the next page near the end of the list."""
        self._virtualizer.update_viewport(scroll_offset, viewport_height)
        near_end = self._trigger.update(
            self._virtualizer.scroll_offset,
            self._virtualizer.viewport_height,
            self._virtualizer.content_height,
        )
        if near_end:
            await self.load_more()
        return self._virtualizer.window()

    async def refresh(self) -> SearchOutcome | None:
        task = self._refresh()
        if task is None:
            return None
        return await task

    async def drain(self) -> None:
        await self._executor.drain()

    async def logout(self) -> None:
        """Drop every cached and locally held record and sign out."""
        await self._executor.close()
        self._executor.auth = ANONYMOUS
        source_auth = getattr(self._executor.source, "auth", None)
        if isinstance(source_auth, AuthContext):
            self._executor.source.auth = ANONYMOUS  # type: ignore[attr-defined]
        self._executor.cache.clear()
        self._executor.clear_local()
        self._executor.history.clear()
        await self._executor.source.aclose()
        self._loader.reset()
        self._virtualizer.reset()
        self._trigger.rearm()
        logger.info("Signed out; cleared cached prompts")

    async def close(self) -> None:
        """Cancel pending searches and release the source connections."""
        await self._executor.close()
        self._unsubscribe()
        self._loader.close()
        await self._executor.source.aclose()

    async def __aenter__(self) -> RetrievalSession:
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _refresh(self) -> asyncio.Task[SearchOutcome] | None:
        query = self._executor.active_query
        if query is None:
            return None
        self._loader.begin(fingerprint(query), query)
        return self._executor.refresh()

    def _sync_item_count(self) -> None:
        self._virtualizer.set_item_count(len(self._loader.records))

    def _on_outcome(self, outcome: SearchOutcome) -> None:
        self._sync_item_count()
        self._trigger.rearm()


__all__ = ["RetrievalSession"]
