"""CLI command handlers for the prompt library.

Updates:
  v0.2.1 - 2026-10-18 - Report outcomes as notices; pipeline warnings print via main.
  v0.2.0 - 2026-10-17 - Add suggest command and category insights output.
  v0.1.0 - 2026-10-16 - Introduce search, top, and categories handlers.
"""

from __future__ import annotations

import argparse
import logging
import textwrap
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from models.category_model import ALL_CATEGORIES
from models.filter_state import FilterState, SortKey
from retrieval import Notice, NoticeLevel, PromptLibraryError, SearchState

from .utils import format_metric, print_notice

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from retrieval import RetrievalSession

CommandHandler = Callable[["RetrievalSession", argparse.Namespace, logging.Logger], Awaitable[int]]


@dataclass(frozen=True)
class CommandSpec:
    """Metadata for dispatching CLI command handlers."""

    handler: CommandHandler


async def _load_pages(
    session: RetrievalSession,
    state: FilterState,
    pages: int,
    logger: logging.Logger,
) -> bool:
    """Run the search for *state* and fetch up to *pages* pages."""
    try:
        outcome = await session.set_filter(state)
    except PromptLibraryError as exc:
        print_notice(logger, Notice("Search failed", str(exc), NoticeLevel.ERROR))
        return False
    if outcome.state is not SearchState.FAILED and not session.executor.auth.is_authenticated:
        hint = "set PROMPT_LIBRARY_USER_ID and PROMPT_LIBRARY_ACCESS_TOKEN."
        print_notice(logger, Notice("Not signed in", hint, NoticeLevel.WARNING))
    for _ in range(max(1, pages) - 1):
        if not session.has_next_page:
            break
        if not await session.load_more():
            break
    return True


async def run_search(
    session: RetrievalSession,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    sort = SortKey(args.sort) if getattr(args, "sort", None) else None
    state = FilterState(
        category=args.category or ALL_CATEGORIES,
        platforms=list(args.platforms or []),
        tags=list(args.tags or []),
        search_text=args.text or "",
        sort=sort,
        min_rating=args.min_rating,
        max_rating=args.max_rating,
        featured_only=bool(args.featured),
        templates_only=bool(args.templates),
    )
    if not await _load_pages(session, state, args.pages, logger):
        return 4

    records = session.records
    print(f"\n{len(records)} of {session.total_count} prompts\n")
    for index, prompt in enumerate(records, start=1):
        title = session.highlight(prompt.title) if state.search_text else prompt.title
        platforms = ", ".join(prompt.platforms) or "-"
        tags = ", ".join(prompt.tags) or "-"
        rating = f"{format_metric(prompt.average_rating)} ({prompt.rating_count})"
        print(
            textwrap.dedent(
                f"""\
                {index}. {title} [{prompt.category or "Uncategorized"}]
                   Platforms: {platforms}  Tags: {tags}
                   Rating: {rating}  Copies: {prompt.copy_count}
                """
            )
        )
    stats = session.cache_stats()
    logger.info(
        "Cache entries=%s hits=%s misses=%s hit_rate=%s",
        stats.total_entries,
        stats.hits,
        stats.misses,
        format_metric(stats.hit_rate * 100, suffix="%"),
    )
    return 0


async def run_top(
    session: RetrievalSession,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    if not await _load_pages(session, FilterState(), args.pages, logger):
        return 4
    limit = max(1, int(getattr(args, "limit", 5) or 5))
    performers = session.top_performers(limit)
    if not performers:
        print_notice(logger, Notice("Top prompts", "No prompts have been copied or rated yet."))
        return 0
    print(f"\nTop {len(performers)} performing prompts\n")
    for index, entry in enumerate(performers, start=1):
        prompt = entry.prompt
        print(
            f"{index}. {prompt.title}  score={format_metric(entry.score)}  "
            f"copies={prompt.copy_count}  rating={format_metric(prompt.average_rating)}"
        )
    return 0


async def run_categories(
    session: RetrievalSession,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    if not await _load_pages(session, FilterState(), args.pages, logger):
        return 4
    if args.category:
        insights = session.category_insights(args.category)
        print(f"\n{insights.category} insights\n")
        print(f"Prompts: {insights.total_prompts}")
        print(f"Average rating: {format_metric(insights.average_rating)}")
        print(f"Total copies: {insights.total_copies}")
        print(f"Community prompts: {insights.community_count}")
        if insights.top_rated:
            print("Top rated:")
            for prompt in insights.top_rated:
                print(f"  - {prompt.title} ({format_metric(prompt.average_rating)})")
        return 0

    rows = session.category_stats()
    if not rows:
        print_notice(logger, Notice("Categories", "No prompts loaded."))
        return 0
    print(f"\n{'Category':<32} {'Count':>6} {'Copies':>8} {'Rating':>7} {'Community':>10}")
    for row in rows:
        print(
            f"{row.category:<32} {row.count:>6} {row.total_copies:>8} "
            f"{format_metric(row.average_rating):>7} {row.community_count:>10}"
        )
    return 0


async def run_suggest(
    session: RetrievalSession,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    prefix = (getattr(args, "prefix", "") or "").strip()
    if len(prefix) < 2:
        logger.error("Suggestion prefix must contain at least two characters.")
        return 5
    if not await _load_pages(session, FilterState(), args.pages, logger):
        return 4
    limit = max(1, int(getattr(args, "limit", 5) or 5))
    suggestions = session.executor.suggestion_index.suggest(prefix, limit)
    if not suggestions:
        print_notice(logger, Notice("Suggestions", f"No suggestions for {prefix!r}."))
        return 0
    for suggestion in suggestions:
        print(suggestion)
    return 0


COMMAND_SPECS: dict[str | None, CommandSpec] = {
    "search": CommandSpec(run_search),
    "top": CommandSpec(run_top),
    "categories": CommandSpec(run_categories),
    "suggest": CommandSpec(run_suggest),
}


__all__ = ["CommandSpec", "COMMAND_SPECS"]
