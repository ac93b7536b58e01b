"""Factories for constructing retrieval sessions from validated settings.

Updates:
  v0.3.0 - 2026-10-18 - Build redis.asyncio clients; redact the DSN in warnings.
  v0.2.0 - 2026-10-17 - Degrade to no snapshot cache when Redis cannot be configured.
  v0.1.0 - 2026-10-15 - Introduce build_retrieval_session.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, cast

import redis.asyncio as aioredis

from config import redact_dsn

from .cache import InvalidationPolicy, ResultCache
from .executor import SearchExecutor
from .history import SearchHistory
from .loader import ProximityTrigger
from .notices import NoticeCenter
from .record_cache import RedisRecordCache
from .remote import AuthContext, HttpPromptSource, PromptSource
from .session import RetrievalSession
from .virtualization import Virtualizer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from redis.asyncio import Redis

    from config import PromptLibrarySettings

    from .record_cache import RedisClientProtocol

factory_logger = logging.getLogger("prompt_library.factory")


def _resolve_redis_client(
    redis_dsn: str | None,
    redis_client: RedisClientProtocol | None,
) -> tuple[RedisClientProtocol | None, str | None]:
    """Create a Redis client when a DSN is provided but no client supplied."""
    if redis_client is not None or not redis_dsn:
        return redis_client, None
    from_url = cast("Callable[[str], Redis]", aioredis.from_url)
    try:
        client = from_url(redis_dsn)
    except Exception as exc:  # noqa: BLE001 - external dependency failure
        shown = redact_dsn(redis_dsn) or ""
        reason = (
            "Redis snapshot cache disabled: unable to configure the client. "
            f"DSN={shown}; error={str(exc).replace(redis_dsn, shown)}"
        )
        return None, reason
    return cast("RedisClientProtocol", client), None


def resolve_auth(settings: PromptLibrarySettings) -> AuthContext:
    """Return the identity configured in *settings*."""
    return AuthContext(user_id=settings.user_id, access_token=settings.access_token)


def build_prompt_source(
    settings: PromptLibrarySettings,
    *,
    auth: AuthContext | None = None,
    redis_client: RedisClientProtocol | None = None,
) -> HttpPromptSource:
    """Return an HTTP prompt source configured from *settings*."""
    client, reason = _resolve_redis_client(settings.redis_dsn, redis_client)
    if reason:
        factory_logger.warning(reason)
    record_cache = (
        RedisRecordCache(client, ttl_seconds=settings.record_cache_ttl_seconds)
        if client is not None
        else None
    )
    return HttpPromptSource(
        base_url=settings.api_base_url,
        api_key=settings.api_key,
        auth=auth or resolve_auth(settings),
        timeout=settings.request_timeout_seconds,
        max_attempts=settings.max_attempts,
        record_cache=record_cache,
    )


def build_retrieval_session(
    settings: PromptLibrarySettings,
    *,
    source: PromptSource | None = None,
    auth: AuthContext | None = None,
    redis_client: RedisClientProtocol | None = None,
    notices: NoticeCenter | None = None,
    clock: Callable[[], float] = time.monotonic,
    **executor_overrides: Any,
) -> RetrievalSession:
    """Wire cache, executor, loader, and virtualizer into a session."""
    resolved_auth = auth or resolve_auth(settings)
    resolved_source = source or build_prompt_source(
        settings, auth=resolved_auth, redis_client=redis_client
    )
    cache = ResultCache(
        ttl_seconds=settings.cache_ttl_seconds,
        capacity=settings.cache_capacity,
        policy=InvalidationPolicy(settings.invalidation_policy),
        clock=clock,
    )
    executor = SearchExecutor(
        resolved_source,
        cache,
        auth=resolved_auth,
        notices=notices or NoticeCenter(),
        history=SearchHistory(),
        debounce_seconds=executor_overrides.pop("debounce_seconds", settings.debounce_seconds),
        page_size=executor_overrides.pop("page_size", settings.page_size),
        suggestion_limit=settings.suggestion_limit,
    )
    if executor_overrides:
        unexpected = ", ".join(sorted(executor_overrides))
        raise TypeError(f"Unexpected executor overrides: {unexpected}")
    virtualizer = Virtualizer(
        row_height=settings.row_height_px,
        overscan=settings.overscan_rows,
        items_per_row=settings.items_per_row,
    )
    factory_logger.debug(
        "Built retrieval session",
        extra={
            "source": type(resolved_source).__name__,
            "cache_ttl_seconds": settings.cache_ttl_seconds,
            "cache_capacity": settings.cache_capacity,
            "invalidation_policy": settings.invalidation_policy,
        },
    )
    return RetrievalSession(
        executor,
        virtualizer=virtualizer,
        trigger=ProximityTrigger(settings.load_more_threshold_px),
    )


__all__ = ["build_prompt_source", "build_retrieval_session", "resolve_auth"]
