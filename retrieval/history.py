"""In-session search history with recent and popular queries.

Updates:
  v0.1.0 - 2026-10-15 - Track recent searches and popular query counts.
"""

from __future__ import annotations

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

RECENT_LIMIT = 20
POPULAR_LIMIT = 5


@dataclass(slots=True, frozen=True)
class SearchHistoryEntry:
    """One executed search."""

    search_query: str
    search_filters: dict[str, Any]
    result_count: int
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class SearchHistory:
    """Bounded record of the searches a user ran during the session."""

    def __init__(self, recent_limit: int = RECENT_LIMIT) -> None:
        self._recent: deque[SearchHistoryEntry] = deque(maxlen=recent_limit)
        self._counts: Counter[str] = Counter()

    def add(
        self,
        search_query: str,
        search_filters: dict[str, Any] | None = None,
        result_count: int = 0,
    ) -> SearchHistoryEntry | None:
        """Record a search; blank queries are ignored."""
        text = search_query.strip()
        if not text:
            return None
        entry = SearchHistoryEntry(
            search_query=text,
            search_filters=dict(search_filters or {}),
            result_count=result_count,
        )
        self._recent.appendleft(entry)
        self._counts[text.casefold()] += 1
        return entry

    def recent(self) -> list[SearchHistoryEntry]:
        """Return searches newest first."""
        return list(self._recent)

    def popular(self, limit: int = POPULAR_LIMIT) -> list[tuple[str, int]]:
        """Return the most frequent queries, ties broken alphabetically."""
        ranked = sorted(self._counts.items(), key=lambda item: (-item[1], item[0]))
        return ranked[:limit]

    def clear(self) -> None:
        self._recent.clear()
        self._counts.clear()


__all__ = ["SearchHistory", "SearchHistoryEntry"]
