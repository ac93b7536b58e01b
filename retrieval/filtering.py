"""Local facet filtering, ordering, highlighting, and suggestions.

The same predicates back the offline fallback path, instant sub-filtering of
already fetched pages, and targeted cache invalidation, so they mirror what
the remote search applies server-side.

Updates:
  v0.3.1 - 2026-10-18 - Insert new suggestion labels with bisect instead of rebuilding.
  v0.3.0 - 2026-10-15 - Add SuggestionIndex prefix lookup and tag suggestions.
  v0.2.0 - 2026-10-13 - Add highlight_matches and facet_options helpers.
  v0.1.0 - 2026-10-11 - Initial predicate composition and total-order sorting.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from models.category_model import (
    UNCATEGORIZED_FOLDER,
    normalise_facet_value,
    slugify_category,
)
from models.filter_state import SortKey

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from typing import Any

    from models.prompt_model import Prompt

    from .query import Query

MIN_SUGGESTION_LENGTH = 2
DEFAULT_SUGGESTION_LIMIT = 5
DEFAULT_TAG_SUGGESTION_LIMIT = 10


def _matches_text(record: Prompt, text: str) -> bool:
    return any(text in " ".join(field.split()).casefold() for field in record.search_fields)


def _matches_any(values: Iterable[str], selected: tuple[str, ...]) -> bool:
    wanted = set(selected)
    return any(normalise_facet_value(value) in wanted for value in values)


def matches(record: Prompt, query: Query) -> bool:
    """Return ``True`` when *record* satisfies every facet in *query*.

    Distinct facets combine with AND; values inside a multi-select facet
    combine with OR.
    """
    if query.category and slugify_category(record.category) != query.category:
        return False
    if query.platforms and not _matches_any(record.platforms, query.platforms):
        return False
    if query.tags and not _matches_any(record.tags, query.tags):
        return False
    if query.folder_id:
        if query.folder_id == UNCATEGORIZED_FOLDER:
            if record.folder_id:
                return False
        elif record.folder_id != query.folder_id:
            return False
    if query.min_rating is not None and record.average_rating < query.min_rating:
        return False
    if query.max_rating is not None and record.average_rating > query.max_rating:
        return False
    if query.created_from is not None and record.created_at < query.created_from:
        return False
    if query.created_to is not None and record.created_at > query.created_to:
        return False
    if query.featured_only and not record.is_featured:
        return False
    if query.templates_only and not record.is_template:
        return False
    if query.has_description and not (record.description or "").strip():
        return False
    return not query.text or _matches_text(record, query.text)


def _sort_key(order: SortKey) -> tuple[Callable[[Prompt], Any], bool]:
    """Return the primary key function and whether it sorts descending."""
    if order is SortKey.CREATED_DESC:
        return (lambda record: record.created_at), True
    if order is SortKey.CREATED_ASC:
        return (lambda record: record.created_at), False
    if order is SortKey.TITLE_ASC:
        return (lambda record: record.title.casefold()), False
    if order is SortKey.TITLE_DESC:
        return (lambda record: record.title.casefold()), True
    if order is SortKey.RATING_DESC:
        return (lambda record: record.average_rating), True
    if order is SortKey.COPIES_DESC:
        return (lambda record: record.copy_count), True
    if order is SortKey.USAGE_DESC:
        return (lambda record: record.usage_count), True
    if order is SortKey.RELEVANCE:
        return (lambda record: 0), False
    return (lambda record: record.updated_at), True


def sort_records(records: Iterable[Prompt], order: SortKey) -> list[Prompt]:
    """Return *records* in a total order: primary key, then id ascending."""
    primary, descending = _sort_key(order)
    # Two stable passes keep the id tie-break ascending even for descending keys.
    by_id = sorted(records, key=lambda record: record.id)
    return sorted(by_id, key=primary, reverse=descending)


def filter_records(records: Iterable[Prompt], query: Query) -> list[Prompt]:
    """Return the records matching *query*, ordered by its sort key."""
    return sort_records((record for record in records if matches(record, query)), query.sort)


def highlight_matches(
    text: str,
    term: str,
    *,
    marker: tuple[str, str] = ("<mark>", "</mark>"),
) -> str:
    """Wrap case-insensitive occurrences of *term* in *text* with *marker*."""
    needle = term.strip()
    if not needle:
        return text
    opening, closing = marker
    pattern = re.compile(re.escape(needle), re.IGNORECASE)
    return pattern.sub(lambda match: f"{opening}{match.group(0)}{closing}", text)


@dataclass(slots=True)
class FacetOptions:
    """Distinct facet values available in a record set."""

    categories: list[str]
    platforms: list[str]
    tags: list[str]


def facet_options(records: Iterable[Prompt]) -> FacetOptions:
    """Return the categories, platforms, and tags present in *records*."""
    categories: dict[str, str] = {}
    platforms: dict[str, str] = {}
    tags: dict[str, str] = {}
    for record in records:
        if record.category.strip():
            categories.setdefault(slugify_category(record.category), record.category.strip())
        for platform in record.platforms:
            platforms.setdefault(normalise_facet_value(platform), platform)
        for tag in record.tags:
            tags.setdefault(normalise_facet_value(tag), tag)
    return FacetOptions(
        categories=sorted(categories.values(), key=str.casefold),
        platforms=sorted(platforms.values(), key=str.casefold),
        tags=sorted(tags.values(), key=str.casefold),
    )


class SuggestionIndex:
    """Prefix lookup over titles, tags, categories, and platforms of loaded records.

    Keys stay sorted as records arrive, so appending a page costs one
    ``bisect`` insertion per new label instead of a full rebuild.
    """

    def __init__(self, records: Iterable[Prompt] = ()) -> None:
        """Build the sorted lookup table from *records*."""
        self._keys: list[str] = []
        self._labels: list[str] = []
        self._tags: list[str] = []
        self._tag_keys: set[str] = set()
        self.add(records)

    def rebuild(self, records: Iterable[Prompt]) -> None:
        """Replace the indexed vocabulary with the one drawn from *records*."""
        self._keys = []
        self._labels = []
        self._tags = []
        self._tag_keys = set()
        self.add(records)

    def add(self, records: Iterable[Prompt]) -> None:
        """Index the labels of *records*; the first spelling of a label wins."""
        for record in records:
            for label in (record.title, record.category, *record.platforms):
                text = label.strip()
                if text:
                    self._insert(text)
            for tag in record.tags:
                self._insert(tag)
                key = normalise_facet_value(tag)
                if key not in self._tag_keys:
                    self._tag_keys.add(key)
                    bisect.insort(self._tags, tag, key=str.casefold)

    def _insert(self, label: str) -> None:
        key = normalise_facet_value(label)
        index = bisect.bisect_left(self._keys, key)
        if index < len(self._keys) and self._keys[index] == key:
            return
        self._keys.insert(index, key)
        self._labels.insert(index, label)

    def __len__(self) -> int:
        return len(self._keys)

    def suggest(self, text: str, limit: int = DEFAULT_SUGGESTION_LIMIT) -> list[str]:
        """Return up to *limit* labels starting with *text*, excluding exact matches."""
        prefix = normalise_facet_value(text)
        if len(prefix) < MIN_SUGGESTION_LENGTH or limit <= 0:
            return []
        results: list[str] = []
        start = bisect.bisect_left(self._keys, prefix)
        for index in range(start, len(self._keys)):
            key = self._keys[index]
            if not key.startswith(prefix):
                break
            if key == prefix:
                continue
            results.append(self._labels[index])
            if len(results) >= limit:
                break
        return results

    def suggest_tags(self, text: str, limit: int = DEFAULT_TAG_SUGGESTION_LIMIT) -> list[str]:
        """Return known tags containing *text* anywhere, case-insensitively."""
        needle = normalise_facet_value(text)
        if not needle:
            return []
        return [tag for tag in self._tags if needle in tag.casefold()][:limit]


__all__ = [
    "FacetOptions",
    "SuggestionIndex",
    "facet_options",
    "filter_records",
    "highlight_matches",
    "matches",
    "sort_records",
]
