"""Printable summaries for prompt library configuration.

Updates:
  v0.1.1 - 2026-10-18 - Redact the Redis password.
  v0.1.0 - 2026-10-16 - Extract CLI settings summary rendering.
"""

from __future__ import annotations

from config import PromptLibrarySettings, redact_dsn

from .utils import mask_secret


def print_settings_summary(settings: PromptLibrarySettings) -> None:
    """Emit a readable summary of the resolved configuration."""
    lines = [
        "Prompt library configuration summary",
        "------------------------------------",
        f"API base URL: {settings.api_base_url}",
        f"API key: {mask_secret(settings.api_key)}",
        f"Access token: {mask_secret(settings.access_token)}",
        f"User: {settings.user_id or 'not signed in'}",
        f"Request timeout (seconds): {settings.request_timeout_seconds}",
        f"Redis DSN: {redact_dsn(settings.redis_dsn) or 'not set'}",
        f"Record cache TTL (seconds): {settings.record_cache_ttl_seconds}",
        "",
        "Result cache",
        "------------",
        f"TTL (seconds): {settings.cache_ttl_seconds}",
        f"Capacity: {settings.cache_capacity}",
        f"Invalidation policy: {settings.invalidation_policy}",
        "",
        "Search and paging",
        "-----------------",
        f"Debounce (ms): {settings.debounce_ms}",
        f"Page size: {settings.page_size}",
        f"Load-more threshold (px): {settings.load_more_threshold_px}",
        f"Row height (px): {settings.row_height_px}",
        f"Overscan rows: {settings.overscan_rows}",
        f"Items per row: {settings.items_per_row}",
        f"Suggestion limit: {settings.suggestion_limit}",
    ]
    print("\n".join(lines))
