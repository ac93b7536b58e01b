"""Data models for the prompt library.

Updates: v0.2.0 - 2026-10-13 - Export FilterState and SortKey.
Updates: v0.1.0 - 2026-10-10 - Export Prompt dataclass.
"""

from .category_model import ALL_CATEGORIES, UNCATEGORIZED_FOLDER, slugify_category
from .filter_state import DEFAULT_SORT_KEY, FilterState, SortKey
from .prompt_model import Prompt

__all__ = [
    "ALL_CATEGORIES",
    "DEFAULT_SORT_KEY",
    "FilterState",
    "Prompt",
    "SortKey",
    "UNCATEGORIZED_FOLDER",
    "slugify_category",
]
