"""Ranking and aggregate metrics derived from the loaded record set.

Every helper is pure and recomputed from the records it is given; nothing here
keeps state between calls.

Updates:
  v0.1.2 - 2026-10-18 - Merge category spellings that share a slug.
  v0.1.1 - 2026-10-16 - Add category_insights for a single category summary.
  v0.1.0 - 2026-10-14 - Introduce top performer ranking and category aggregation.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from models.category_model import is_all_categories, slugify_category

if TYPE_CHECKING:
    from collections.abc import Iterable

    from models.prompt_model import Prompt

COPY_WEIGHT = 0.7
RATING_WEIGHT = 0.3
TOP_PERFORMER_LIMIT = 5
TOP_RATED_LIMIT = 3
TOP_RATED_MIN_RATINGS = 2


@dataclass(slots=True, frozen=True)
class ScoredPrompt:
    """Prompt paired with its top-performer score."""

    prompt: Prompt
    score: float


@dataclass(slots=True)
class CategoryStats:
    """Aggregate metrics for one category."""

    category: str
    count: int = 0
    total_copies: int = 0
    average_rating: float = 0.0
    community_count: int = 0


@dataclass(slots=True)
class CategoryInsights:
    """Summary of one category, or of every record for ``"All"``."""

    category: str
    total_prompts: int
    average_rating: float
    total_copies: int
    community_count: int
    top_rated: list[Prompt] = field(default_factory=list)


def performance_score(prompt: Prompt) -> float:
    """Return ``copy_count * 0.7 + average_rating * 0.3``."""
    return prompt.copy_count * COPY_WEIGHT + prompt.average_rating * RATING_WEIGHT


def top_performers(
    records: Iterable[Prompt],
    limit: int = TOP_PERFORMER_LIMIT,
) -> list[ScoredPrompt]:
    """Rank records by performance score, highest first, ties by id.

    Records with neither copies nor a rating are left out.
    """
    scored = [
        ScoredPrompt(prompt=record, score=performance_score(record))
        for record in records
        if record.copy_count > 0 or record.average_rating > 0
    ]
    scored.sort(key=lambda item: (-item.score, item.prompt.id))
    return scored[: max(0, limit)]


def category_stats(records: Iterable[Prompt]) -> list[CategoryStats]:
    """Group records by category slug, most populated first, ties by name.

    Spellings that share a slug (``"Writing"`` and ``"writing "``) form one row
    labelled with the first spelling seen.
    """
    grouped: dict[str, CategoryStats] = {}
    rated: defaultdict[str, list[float]] = defaultdict(list)
    for record in records:
        label = (record.category or "").strip() or "Uncategorized"
        name = slugify_category(label)
        stats = grouped.setdefault(name, CategoryStats(category=label))
        stats.count += 1
        stats.total_copies += record.copy_count
        if record.is_community:
            stats.community_count += 1
        if record.rating_count > 0:
            rated[name].append(record.average_rating)
    for name, stats in grouped.items():
        ratings = rated.get(name)
        stats.average_rating = sum(ratings) / len(ratings) if ratings else 0.0
    return sorted(grouped.values(), key=lambda stats: (-stats.count, stats.category))


def category_insights(records: Iterable[Prompt], category: str) -> CategoryInsights:
    """Summarise *category*; ``"All"`` covers every record."""
    if is_all_categories(category):
        selected = list(records)
    else:
        slug = slugify_category(category)
        selected = [record for record in records if slugify_category(record.category) == slug]
    total = len(selected)
    top_rated = sorted(
        (
            record
            for record in selected
            if record.average_rating > 0 and record.rating_count >= TOP_RATED_MIN_RATINGS
        ),
        key=lambda record: (-record.average_rating, record.id),
    )
    return CategoryInsights(
        category=category,
        total_prompts=total,
        average_rating=sum(record.average_rating for record in selected) / max(total, 1),
        total_copies=sum(record.copy_count for record in selected),
        community_count=sum(1 for record in selected if record.is_community),
        top_rated=top_rated[:TOP_RATED_LIMIT],
    )


__all__ = [
    "CategoryInsights",
    "CategoryStats",
    "ScoredPrompt",
    "category_insights",
    "category_stats",
    "performance_score",
    "top_performers",
]
