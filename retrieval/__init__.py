"""Retrieval pipeline for the prompt library.

Updates:
  v0.3.0 - 2026-10-17 - Export session factory, mutations, and scoring helpers.
  v0.2.0 - 2026-10-15 - Export executor, loader, and virtualization types.
  v0.1.0 - 2026-10-11 - Surface query composition, filtering, and the result cache.
"""

from .cache import CacheEntry, CacheStats, InvalidationPolicy, ResultCache
from .exceptions import (
    FingerprintCollisionError,
    PromptCacheError,
    PromptLibraryError,
    PromptMutationUnavailable,
    PromptNotFoundError,
    RemoteSourceError,
)
from .executor import SearchExecutor, SearchOutcome, SearchState
from .factory import build_prompt_source, build_retrieval_session
from .filtering import (
    FacetOptions,
    SuggestionIndex,
    facet_options,
    filter_records,
    highlight_matches,
    matches,
    sort_records,
)
from .history import SearchHistory, SearchHistoryEntry
from .loader import IncrementalLoader, LoadState, ProximityTrigger
from .mutations import PromptMutationService
from .notices import Notice, NoticeCenter, NoticeLevel
from .query import Query, compose_query, fingerprint
from .remote import (
    ANONYMOUS,
    AuthContext,
    HttpPromptSource,
    InMemoryPromptSource,
    PromptSource,
    SearchPage,
)
from .scoring import (
    CategoryInsights,
    CategoryStats,
    ScoredPrompt,
    category_insights,
    category_stats,
    top_performers,
)
from .session import RetrievalSession
from .virtualization import ViewportWindow, Virtualizer, compute_window

__all__ = [
    "ANONYMOUS",
    "AuthContext",
    "CacheEntry",
    "CacheStats",
    "CategoryInsights",
    "CategoryStats",
    "FacetOptions",
    "FingerprintCollisionError",
    "HttpPromptSource",
    "InMemoryPromptSource",
    "IncrementalLoader",
    "InvalidationPolicy",
    "LoadState",
    "Notice",
    "NoticeCenter",
    "NoticeLevel",
    "PromptCacheError",
    "PromptLibraryError",
    "PromptMutationService",
    "PromptMutationUnavailable",
    "PromptNotFoundError",
    "PromptSource",
    "ProximityTrigger",
    "Query",
    "RemoteSourceError",
    "ResultCache",
    "RetrievalSession",
    "ScoredPrompt",
    "SearchExecutor",
    "SearchHistory",
    "SearchHistoryEntry",
    "SearchOutcome",
    "SearchPage",
    "SearchState",
    "SuggestionIndex",
    "ViewportWindow",
    "Virtualizer",
    "build_prompt_source",
    "build_retrieval_session",
    "category_insights",
    "category_stats",
    "compose_query",
    "compute_window",
    "facet_options",
    "filter_records",
    "fingerprint",
    "highlight_matches",
    "matches",
    "sort_records",
    "top_performers",
]
