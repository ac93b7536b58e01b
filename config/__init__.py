"""Configuration helpers for the prompt library.

Updates: v0.2.1 - 2026-10-18 - Expose redact_dsn.
Updates: v0.2.0 - 2026-10-16 - Expose pagination and cache defaults.
Updates: v0.1.0 - 2026-10-11 - Expose settings loader and configuration error types.
"""

from .settings import (
    DEFAULT_API_BASE_URL,
    DEFAULT_CACHE_CAPACITY,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_PAGE_SIZE,
    PromptLibrarySettings,
    SettingsError,
    load_settings,
    redact_dsn,
)

__all__ = [
    "DEFAULT_API_BASE_URL",
    "DEFAULT_CACHE_CAPACITY",
    "DEFAULT_CACHE_TTL_SECONDS",
    "DEFAULT_PAGE_SIZE",
    "PromptLibrarySettings",
    "SettingsError",
    "load_settings",
    "redact_dsn",
]
