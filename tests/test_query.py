"""Tests for query composition and cache fingerprints.

Updates:
  v0.1.0 - 2026-10-13 - Cover canonicalisation, rating validation, and fingerprint equality.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime

import pytest

from models.filter_state import DEFAULT_SORT_KEY, FilterState, SortKey
from retrieval.query import Query, compose_query, fingerprint


def test_platform_order_does_not_change_fingerprint() -> None:
    """Platforms picked in a different order must share one cache key."""
    first = FilterState(platforms=["Claude", "ChatGPT"])
    second = FilterState(platforms=["chatgpt", " CLAUDE "])

    assert compose_query(first) == compose_query(second)
    assert fingerprint(compose_query(first)) == fingerprint(compose_query(second))


def test_text_is_trimmed_collapsed_and_casefolded() -> None:
    query = compose_query(FilterState(search_text="  Blog   OUTLINE \n"))

    assert query.text == "blog outline"


def test_all_category_and_blank_category_mean_no_filter() -> None:
    assert compose_query(FilterState(category="All")).category is None
    assert compose_query(FilterState(category="all")).category is None
    assert compose_query(FilterState(category="   ")).category is None
    assert compose_query(FilterState(category="Writing & Content")).category == "writing-content"


def test_facet_sets_drop_blanks_and_duplicates() -> None:
    query = compose_query(FilterState(tags=["Blog", "blog", "", "  ", "SEO"]))

    assert query.tags == ("blog", "seo")


def test_default_sort_is_applied() -> None:
    assert compose_query(FilterState()).sort is DEFAULT_SORT_KEY
    assert compose_query(FilterState(sort=SortKey.TITLE_ASC)).sort is SortKey.TITLE_ASC


def test_unknown_sort_falls_back_to_default() -> None:
    state = FilterState()
    state.sort = "most_liked"  # type: ignore[assignment]

    assert compose_query(state).sort is DEFAULT_SORT_KEY


@pytest.mark.parametrize(
    ("min_rating", "max_rating", "expected"),
    [
        (0, 5, (None, None)),
        (3.5, None, (3.5, None)),
        (None, 4, (None, 4.0)),
        (-1, 7, (None, None)),
        (math.nan, 4, (None, 4.0)),
        (4, 2, (None, None)),
        ("bad", None, (None, None)),
    ],
)
def test_rating_bounds_are_validated(
    min_rating: object,
    max_rating: object,
    expected: tuple[float | None, float | None],
) -> None:
    """Neutral, malformed, out-of-range, and inverted bounds mean no filter."""
    state = FilterState(min_rating=min_rating, max_rating=max_rating)  # type: ignore[arg-type]

    query = compose_query(state)

    assert (query.min_rating, query.max_rating) == expected


def test_inverted_date_range_is_dropped() -> None:
    state = FilterState(
        created_from=datetime(2026, 5, 1, tzinfo=UTC),
        created_to=datetime(2026, 4, 1, tzinfo=UTC),
    )

    query = compose_query(state)

    assert query.created_from is None
    assert query.created_to is None


def test_naive_dates_are_treated_as_utc() -> None:
    query = compose_query(FilterState(created_from=datetime(2026, 5, 1)))

    assert query.created_from == datetime(2026, 5, 1, tzinfo=UTC)


def test_empty_state_is_unfiltered() -> None:
    query = compose_query(FilterState())

    assert query.is_unfiltered
    assert query.to_payload() == {"sort": "updated_desc"}


def test_different_queries_have_different_fingerprints() -> None:
    queries = [
        Query(),
        Query(text="blog"),
        Query(tags=("blog",)),
        Query(platforms=("blog",)),
        Query(category="blog"),
        Query(featured_only=True),
        Query(sort=SortKey.TITLE_ASC),
    ]

    keys = {fingerprint(query) for query in queries}

    assert len(keys) == len(queries)


def test_compose_does_not_mutate_state() -> None:
    state = FilterState(platforms=["Claude", "ChatGPT"], search_text=" X ")

    compose_query(state)

    assert state.platforms == ["Claude", "ChatGPT"]
    assert state.search_text == " X "
