"""Canonical query projection and cache fingerprints.

A :class:`Query` is the order-independent form of a :class:`FilterState`.
Two filter states that express the same selection (for example platforms
picked in a different order) always project to equal queries, and equal
queries always share one fingerprint.

Updates:
  v0.2.0 - 2026-10-13 - Drop neutral or malformed rating bounds during composition.
  v0.1.0 - 2026-10-11 - Introduce Query, compose_query, and fingerprint.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from models.category_model import (
    is_all_categories,
    normalise_facet_value,
    slugify_category,
)
from models.filter_state import DEFAULT_SORT_KEY, SortKey

if TYPE_CHECKING:
    from collections.abc import Iterable

    from models.filter_state import FilterState

logger = logging.getLogger(__name__)

MIN_RATING = 0.0
MAX_RATING = 5.0


@dataclass(frozen=True, slots=True)
class Query:
    """Immutable, canonical search request."""

    text: str = ""
    category: str | None = None
    platforms: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    sort: SortKey = DEFAULT_SORT_KEY
    min_rating: float | None = None
    max_rating: float | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    folder_id: str | None = None
    featured_only: bool = False
    templates_only: bool = False
    has_description: bool = False

    @property
    def is_unfiltered(self) -> bool:
        """Return ``True`` when the query selects every record."""
        return self == Query(sort=self.sort)

    def to_payload(self) -> dict[str, Any]:
        """Return the canonical JSON-compatible mapping with empty members omitted."""
        payload: dict[str, Any] = {"sort": self.sort.value}
        if self.text:
            payload["text"] = self.text
        if self.category:
            payload["category"] = self.category
        if self.platforms:
            payload["platforms"] = list(self.platforms)
        if self.tags:
            payload["tags"] = list(self.tags)
        if self.min_rating is not None:
            payload["min_rating"] = self.min_rating
        if self.max_rating is not None:
            payload["max_rating"] = self.max_rating
        if self.created_from is not None:
            payload["created_from"] = self.created_from.isoformat()
        if self.created_to is not None:
            payload["created_to"] = self.created_to.isoformat()
        if self.folder_id:
            payload["folder_id"] = self.folder_id
        if self.featured_only:
            payload["featured_only"] = True
        if self.templates_only:
            payload["templates_only"] = True
        if self.has_description:
            payload["has_description"] = True
        return payload


def _normalise_text(value: str | None) -> str:
    return " ".join((value or "").split()).casefold()


def _normalise_set(values: Iterable[Any] | None) -> tuple[str, ...]:
    if not values:
        return ()
    cleaned = {normalise_facet_value(value) for value in values if value is not None}
    cleaned.discard("")
    return tuple(sorted(cleaned))


def _normalise_rating(value: Any, *, neutral: float) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring malformed rating bound", extra={"value": repr(value)})
        return None
    if math.isnan(number) or number < MIN_RATING or number > MAX_RATING:
        logger.debug("Ignoring out-of-range rating bound", extra={"value": number})
        return None
    if number == neutral:
        return None
    return number


def _normalise_datetime(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def compose_query(state: FilterState) -> Query:
    """Project *state* into its canonical :class:`Query`.

    Never raises: malformed components are treated as "no filter".
    """
    category = None if is_all_categories(state.category) else slugify_category(state.category)

    min_rating = _normalise_rating(state.min_rating, neutral=MIN_RATING)
    max_rating = _normalise_rating(state.max_rating, neutral=MAX_RATING)
    if min_rating is not None and max_rating is not None and min_rating > max_rating:
        logger.debug("Ignoring inverted rating range")
        min_rating = max_rating = None

    created_from = _normalise_datetime(state.created_from)
    created_to = _normalise_datetime(state.created_to)
    if created_from is not None and created_to is not None and created_from > created_to:
        logger.debug("Ignoring inverted creation date range")
        created_from = created_to = None

    try:
        sort = SortKey(state.sort) if state.sort is not None else DEFAULT_SORT_KEY
    except ValueError:
        logger.warning("Unknown sort order selection: %s", state.sort)
        sort = DEFAULT_SORT_KEY

    folder_id = (state.folder_id or "").strip() or None

    return Query(
        text=_normalise_text(state.search_text),
        category=category or None,
        platforms=_normalise_set(state.platforms),
        tags=_normalise_set(state.tags),
        sort=sort,
        min_rating=min_rating,
        max_rating=max_rating,
        created_from=created_from,
        created_to=created_to,
        folder_id=folder_id,
        featured_only=bool(state.featured_only),
        templates_only=bool(state.templates_only),
        has_description=bool(state.has_description),
    )


def fingerprint(query: Query) -> str:
    """Return the cache key for *query*.

    The key is the canonical JSON encoding of :meth:`Query.to_payload`, so it
    is injective over queries and stable across processes.
    """
    return json.dumps(
        query.to_payload(),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


__all__ = ["MAX_RATING", "MIN_RATING", "Query", "compose_query", "fingerprint"]
