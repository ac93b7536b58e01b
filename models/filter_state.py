"""User-facing filter control state.

Updates:
  v0.2.0 - 2026-10-13 - Add date range, flag filters, and toggle helpers.
  v0.1.0 - 2026-10-11 - Introduce FilterState and SortKey.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum

from .category_model import ALL_CATEGORIES


class SortKey(str, Enum):
    """Supported result orderings."""

    UPDATED_DESC = "updated_desc"
    CREATED_DESC = "created_desc"
    CREATED_ASC = "created_asc"
    TITLE_ASC = "title_asc"
    TITLE_DESC = "title_desc"
    RATING_DESC = "rating_desc"
    COPIES_DESC = "copies_desc"
    USAGE_DESC = "usage_desc"
    RELEVANCE = "relevance"


DEFAULT_SORT_KEY = SortKey.UPDATED_DESC


@dataclass(slots=True)
class FilterState:
    """Mutable selections owned by the filter controls.

    Platform and tag lists keep the order in which the user clicked them;
    canonical ordering happens when the state is projected into a query.
    """

    category: str = ALL_CATEGORIES
    platforms: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    search_text: str = ""
    sort: SortKey | None = None
    min_rating: float | None = None
    max_rating: float | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    folder_id: str | None = None
    featured_only: bool = False
    templates_only: bool = False
    has_description: bool = False

    def toggle_platform(self, platform: str) -> None:
        """Select *platform* or deselect it when already selected."""
        _toggle(self.platforms, platform)

    def toggle_tag(self, tag: str) -> None:
        """Select *tag* or deselect it when already selected."""
        _toggle(self.tags, tag)

    def reset(self) -> None:
        """Clear every selection back to the defaults."""
        defaults = FilterState()
        for item in fields(self):
            setattr(self, item.name, getattr(defaults, item.name))

    def snapshot(self) -> FilterState:
        """Return an independent copy fixed for one query cycle."""
        return replace(self, platforms=list(self.platforms), tags=list(self.tags))


def _toggle(values: list[str], value: str) -> None:
    if value in values:
        values.remove(value)
    else:
        values.append(value)


__all__ = ["DEFAULT_SORT_KEY", "FilterState", "SortKey"]
