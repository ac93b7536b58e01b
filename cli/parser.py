"""Argument parser for the prompt library CLI.

Updates:
  v0.2.0 - 2026-10-17 - Add suggest subcommand and rating/flag filters.
  v0.1.0 - 2026-10-16 - Introduce search, top, and categories subcommands.
"""

from __future__ import annotations

import argparse
from pathlib import Path

from models.filter_state import SortKey


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--pages",
        type=int,
        default=1,
        help="Number of result pages to load before printing (default: 1).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the prompt library launcher."""
    parser = argparse.ArgumentParser(description="Prompt library search launcher")
    parser.add_argument(
        "--logging-config",
        type=Path,
        default=None,
        help="Path to logging configuration file (INI format)",
    )
    parser.add_argument(
        "--print-settings",
        action="store_true",
        help="Print resolved settings and exit",
    )
    parser.add_argument(
        "--dataset",
        type=Path,
        default=None,
        help="Serve prompts from a local JSON file instead of the remote API.",
    )

    subparsers = parser.add_subparsers(dest="command")

    search_parser = subparsers.add_parser(
        "search",
        help="Search prompts by text and facets.",
    )
    search_parser.add_argument(
        "text",
        nargs="?",
        default="",
        help="Free-text query matched against titles, descriptions, bodies, and tags.",
    )
    search_parser.add_argument("--category", default=None, help="Category name (default: All).")
    search_parser.add_argument(
        "--platform",
        dest="platforms",
        action="append",
        default=[],
        help="Platform tag; repeat to match any of several platforms.",
    )
    search_parser.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        help="Free-form tag; repeat to match any of several tags.",
    )
    search_parser.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        default=None,
        help="Result ordering (default: updated_desc).",
    )
    search_parser.add_argument("--min-rating", type=float, default=None)
    search_parser.add_argument("--max-rating", type=float, default=None)
    search_parser.add_argument(
        "--featured",
        action="store_true",
        help="Only include featured prompts.",
    )
    search_parser.add_argument(
        "--templates",
        action="store_true",
        help="Only include template prompts.",
    )
    _add_source_arguments(search_parser)

    top_parser = subparsers.add_parser(
        "top",
        help="Show the top performing prompts by copies and rating.",
    )
    top_parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Number of prompts to display (default: 5).",
    )
    _add_source_arguments(top_parser)

    categories_parser = subparsers.add_parser(
        "categories",
        help="Summarise prompt counts, copies, and ratings per category.",
    )
    categories_parser.add_argument(
        "--category",
        default=None,
        help="Show insights for a single category instead of the full table.",
    )
    _add_source_arguments(categories_parser)

    suggest_parser = subparsers.add_parser(
        "suggest",
        help="Complete a search prefix from titles, tags, categories, and platforms.",
    )
    suggest_parser.add_argument("prefix", type=str, help="At least two characters.")
    suggest_parser.add_argument(
        "--limit",
        type=int,
        default=5,
        help="Number of suggestions to display (default: 5).",
    )
    _add_source_arguments(suggest_parser)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Return parsed CLI arguments for the prompt library launcher."""
    return build_parser().parse_args(argv)


__all__ = ["build_parser", "parse_args"]
