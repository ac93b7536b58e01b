"""Settings management utilities for the prompt library configuration.

Updates:
  v0.3.2 - 2026-10-18 - Add redact_dsn for printing connection strings.
  v0.3.1 - 2026-10-17 - Read .env values through python-dotenv only.
  v0.3.0 - 2026-10-16 - Add pagination, virtualization, and suggestion tuning fields.
  v0.2.0 - 2026-10-13 - Add result cache capacity and invalidation policy settings.
  v0.1.0 - 2026-10-11 - Introduce PromptLibrarySettings with JSON and env sources.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal, cast
from urllib.parse import urlsplit, urlunsplit

from dotenv import dotenv_values
from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

_DOTENV_FALLBACK_PATH = ".env"

DEFAULT_API_BASE_URL = "http://localhost:54321"
DEFAULT_CACHE_TTL_SECONDS = 300
DEFAULT_CACHE_CAPACITY = 50
DEFAULT_PAGE_SIZE = 20

# Field name -> accepted environment keys (without the PROMPT_LIBRARY_ prefix).
_ENV_ALIASES: dict[str, list[str]] = {
    "api_base_url": ["API_BASE_URL", "api_base_url", "SUPABASE_URL"],
    "api_key": ["API_KEY", "api_key", "SUPABASE_ANON_KEY"],
    "access_token": ["ACCESS_TOKEN", "access_token"],
    "user_id": ["USER_ID", "user_id"],
    "request_timeout_seconds": ["REQUEST_TIMEOUT_SECONDS", "request_timeout_seconds"],
    "max_attempts": ["MAX_ATTEMPTS", "max_attempts"],
    "redis_dsn": ["REDIS_DSN", "redis_dsn"],
    "record_cache_ttl_seconds": ["RECORD_CACHE_TTL_SECONDS", "record_cache_ttl_seconds"],
    "cache_ttl_seconds": ["CACHE_TTL_SECONDS", "cache_ttl_seconds"],
    "cache_capacity": ["CACHE_CAPACITY", "cache_capacity"],
    "invalidation_policy": ["INVALIDATION_POLICY", "invalidation_policy"],
    "debounce_ms": ["DEBOUNCE_MS", "debounce_ms"],
    "page_size": ["PAGE_SIZE", "page_size"],
    "load_more_threshold_px": ["LOAD_MORE_THRESHOLD_PX", "load_more_threshold_px"],
    "row_height_px": ["ROW_HEIGHT_PX", "row_height_px"],
    "overscan_rows": ["OVERSCAN_ROWS", "overscan_rows"],
    "items_per_row": ["ITEMS_PER_ROW", "items_per_row"],
    "suggestion_limit": ["SUGGESTION_LIMIT", "suggestion_limit"],
}

_SECRET_KEYS = {"api_key", "API_KEY", "SUPABASE_ANON_KEY", "access_token", "ACCESS_TOKEN"}
# Aliases also honoured without the PROMPT_LIBRARY_ prefix.
_BARE_ALIASES = {"SUPABASE_URL", "SUPABASE_ANON_KEY"}


def _read_dotenv_values() -> dict[str, str]:
    """Load ``.env`` entries into a mapping without mutating ``os.environ``."""
    env_file_override = os.getenv("PROMPT_LIBRARY_ENV_FILE")
    if env_file_override is not None:
        candidate = env_file_override.strip()
        if not candidate:
            return {}
        path = Path(candidate).expanduser()
    else:
        path = Path(_DOTENV_FALLBACK_PATH).expanduser()
    if not path.is_file():
        return {}
    raw_values = dotenv_values(str(path))
    return {str(key): str(value) for key, value in raw_values.items() if value is not None}


class SettingsError(Exception):
    """Raised when prompt library configuration cannot be loaded or validated."""


class PromptLibrarySettings(BaseSettings):
    """Application configuration sourced from environment variables or JSON files."""

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        description="Base URL of the PostgREST-compatible prompt store.",
    )
    api_key: str | None = Field(default=None, description="Anonymous API key sent as apikey.")
    access_token: str | None = Field(default=None, description="Bearer token for the user.")
    user_id: str | None = Field(default=None, description="Signed-in user identifier.")
    request_timeout_seconds: float = Field(default=10.0)
    max_attempts: int = Field(default=3)
    redis_dsn: str | None = None
    record_cache_ttl_seconds: int = Field(default=300)
    cache_ttl_seconds: int = Field(default=DEFAULT_CACHE_TTL_SECONDS)
    cache_capacity: int = Field(default=DEFAULT_CACHE_CAPACITY)
    invalidation_policy: Literal["all", "matching"] = Field(
        default="all",
        description="Which result cache entries a mutation drops.",
    )
    debounce_ms: int = Field(default=300)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE)
    load_more_threshold_px: int = Field(default=100)
    row_height_px: int = Field(default=400)
    overscan_rows: int = Field(default=2)
    items_per_row: int = Field(default=1)
    suggestion_limit: int = Field(default=5)

    model_config = cast(
        "SettingsConfigDict",
        {
            "env_prefix": "PROMPT_LIBRARY_",
            "case_sensitive": False,
            "populate_by_name": True,
            "env": _ENV_ALIASES,
        },
    )

    @field_validator(
        "cache_ttl_seconds",
        "record_cache_ttl_seconds",
        "cache_capacity",
        "page_size",
        "row_height_px",
        "items_per_row",
        "max_attempts",
    )
    def _validate_positive(cls, value: int) -> int:
        """Ensure counters and durations are positive integers."""
        if value <= 0:
            raise ValueError("value must be greater than zero")
        return value

    @field_validator("debounce_ms", "load_more_threshold_px", "overscan_rows", "suggestion_limit")
    def _validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("value cannot be negative")
        return value

    @field_validator("request_timeout_seconds")
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("request_timeout_seconds must be greater than zero")
        return value

    @field_validator("redis_dsn", "api_key", "access_token", "user_id", mode="before")
    def _strip_optional(cls, value: str | None) -> str | None:
        """Normalise optional strings by stripping whitespace and empty strings."""
        if value is None:
            return None
        stripped = str(value).strip()
        return stripped or None

    @field_validator("api_base_url", mode="before")
    def _normalise_base_url(cls, value: Any) -> str:
        text = str(value or "").strip().rstrip("/")
        if not text.startswith(("http://", "https://")):
            raise ValueError("api_base_url must be an http(s) URL")
        return text

    @field_validator("invalidation_policy", mode="before")
    def _normalise_policy(cls, value: Any) -> str:
        return str(value or "all").strip().lower()

    @model_validator(mode="after")
    def _validate_page_size(self) -> PromptLibrarySettings:
        """Keep the page size within what the remote accepts."""
        if self.page_size > 100:
            raise ValueError("page_size cannot exceed 100")
        return self

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        """Define configuration source precedence.

        Order (highest → lowest):
            1. Explicit keyword arguments (e.g. load_settings(page_size=50)).
            2. JSON configuration file (application settings).
            3. Environment variables / aliases, then ``.env`` values.
            4. File secrets.
        """

        def env_with_aliases(_: BaseSettings | None = None) -> dict[str, Any]:
            data: dict[str, Any] = {}
            config_dict = cast("dict[str, Any]", cls.model_config)
            prefix = str(config_dict.get("env_prefix", ""))
            dotenv_data = _read_dotenv_values()

            def _lookup(candidate: str) -> str | None:
                value = os.getenv(candidate)
                if value is None:
                    value = dotenv_data.get(candidate)
                if value is None:
                    return None
                stripped_value = str(value).strip()
                return stripped_value or None

            for field, keys in _ENV_ALIASES.items():
                for key in keys:
                    candidates = [f"{prefix}{key}", f"{prefix}{key.upper()}"]
                    if key in _BARE_ALIASES:
                        candidates.append(key)
                    value = next(
                        (found for found in map(_lookup, candidates) if found is not None),
                        None,
                    )
                    if value is not None:
                        data[field] = value
                        break
            return data

        return (
            init_settings,
            cls._json_config_settings_source(settings_cls),
            cast("PydanticBaseSettingsSource", env_with_aliases),
            file_secret_settings,
        )

    @classmethod
    def _json_config_settings_source(
        cls,
        _: type[BaseSettings],
    ) -> PydanticBaseSettingsSource:
        """Return settings extracted from an optional JSON config file."""

        def _loader(_: BaseSettings | None = None) -> dict[str, Any]:
            explicit_path = os.getenv("PROMPT_LIBRARY_CONFIG_JSON")
            candidates: list[Path] = []
            if explicit_path:
                candidates.append(Path(explicit_path).expanduser())
            candidates.append((Path("config") / "config.json").expanduser())

            for path in candidates:
                if not path.exists():
                    if explicit_path and path == candidates[0]:
                        raise SettingsError(f"Configuration file not found: {path}")
                    continue
                try:
                    raw_contents = path.read_text(encoding="utf-8")
                except OSError as exc:  # pragma: no cover - filesystem failure is env-specific
                    raise SettingsError(f"Unable to read configuration file: {path}") from exc
                try:
                    data = json.loads(raw_contents)
                except json.JSONDecodeError as exc:
                    raise SettingsError(f"Invalid JSON in configuration file: {path}") from exc
                if not isinstance(data, dict):
                    message = f"Configuration file {path} must contain a JSON object"
                    raise SettingsError(message)
                mapping_data = cast("Mapping[object, Any]", data)
                data_dict: dict[str, Any] = {str(key): value for key, value in mapping_data.items()}
                removed_secrets = [
                    key
                    for key in _SECRET_KEYS
                    if key in data_dict and data_dict.pop(key, None) is not None
                ]
                if removed_secrets:
                    logger.warning(
                        "Ignoring secret key(s) %s in configuration file %s; "
                        "set credentials via environment variables instead.",
                        ", ".join(sorted(removed_secrets)),
                        path,
                    )
                return {key: data_dict[key] for key in _ENV_ALIASES if key in data_dict}
            return {}

        return cast("PydanticBaseSettingsSource", _loader)


def redact_dsn(dsn: str | None) -> str | None:
    """Return *dsn* with its password replaced by ``***``."""
    if not dsn:
        return dsn
    parts = urlsplit(dsn)
    if parts.password is None:
        return dsn
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"{parts.username or ''}:***@{host}"))


def load_settings(**overrides: Any) -> PromptLibrarySettings:
    """Return validated settings, raising SettingsError on failure."""
    try:
        return PromptLibrarySettings(**overrides)
    except SettingsError:
        raise
    except ValidationError as exc:
        raise SettingsError("Invalid prompt library configuration") from exc


logger = logging.getLogger("prompt_library.settings")
