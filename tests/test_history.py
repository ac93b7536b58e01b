"""Tests for in-session search history.

Updates:
  v0.1.0 - 2026-10-15 - Cover recent ordering and popular query counts.
"""

from __future__ import annotations

from retrieval.history import SearchHistory


def test_recent_searches_are_newest_first_and_bounded() -> None:
    history = SearchHistory(recent_limit=2)

    history.add("blog", {"sort": "updated_desc"}, 3)
    history.add("email", result_count=1)
    history.add("python")

    assert [entry.search_query for entry in history.recent()] == ["python", "email"]


def test_blank_queries_are_ignored() -> None:
    history = SearchHistory()

    assert history.add("   ") is None
    assert history.recent() == []


def test_popular_queries_count_case_insensitively() -> None:
    history = SearchHistory()
    for text in ("Blog", "blog", "email", "sql", "sql"):
        history.add(text)

    assert history.popular(2) == [("blog", 2), ("sql", 2)]

    history.clear()
    assert history.popular() == []
