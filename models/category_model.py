"""Category helpers shared by records, filter state, and queries.

Updates:
  v0.2.0 - 2026-10-12 - Add the "All" sentinel and facet value normalisation.
  v0.1.0 - 2026-10-10 - Keep slugify_category for category comparisons.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")

ALL_CATEGORIES = "All"
UNCATEGORIZED_FOLDER = "uncategorized"


def slugify_category(value: str | None) -> str:
    """Return a URL-safe slug derived from the provided value."""
    text = (value or "").strip().lower()
    if not text:
        return ""
    return _SLUG_PATTERN.sub("-", text).strip("-")


def is_all_categories(value: str | None) -> bool:
    """Return ``True`` when *value* means "no category filter"."""
    text = (value or "").strip()
    return not text or text.casefold() == ALL_CATEGORIES.casefold()


def normalise_facet_value(value: Any) -> str:
    """Return the comparison form of a platform or tag value."""
    return " ".join(str(value).split()).casefold()


def dedupe_labels(values: Iterable[Any] | None) -> list[str]:
    """Return trimmed labels in first-seen order, deduplicated case-insensitively."""
    labels: list[str] = []
    seen: set[str] = set()
    if values is None:
        return labels
    if isinstance(values, str):
        values = [values]
    for raw in values:
        if raw is None:
            continue
        text = str(raw).strip()
        if not text:
            continue
        key = normalise_facet_value(text)
        if key in seen:
            continue
        seen.add(key)
        labels.append(text)
    return labels


__all__ = [
    "ALL_CATEGORIES",
    "UNCATEGORIZED_FOLDER",
    "dedupe_labels",
    "is_all_categories",
    "normalise_facet_value",
    "slugify_category",
]
