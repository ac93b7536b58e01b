"""Redis-backed snapshot cache for single prompt reads.

Updates:
  v0.2.0 - 2026-10-18 - Await the redis.asyncio client instead of blocking the loop.
  v0.1.0 - 2026-10-14 - Move per-prompt SETEX caching behind a small wrapper.
"""

from __future__ import annotations

import json
import logging
from typing import Protocol

from redis.exceptions import RedisError

from models.prompt_model import Prompt

from .exceptions import PromptCacheError

logger = logging.getLogger(__name__)

RedisValue = str | bytes | memoryview


class RedisClientProtocol(Protocol):
    """Subset of the redis.asyncio client used by the snapshot cache."""

    async def get(self, name: str) -> RedisValue | None: ...

    async def setex(self, name: str, time: int, value: RedisValue) -> bool: ...

    async def delete(self, *names: str) -> int: ...

    async def aclose(self) -> None: ...


def _decode(value: RedisValue) -> str:
    if isinstance(value, memoryview):
        return value.tobytes().decode("utf-8")
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisRecordCache:
    """Store prompt snapshots as JSON under ``prompt:<id>`` keys."""

    def __init__(self, client: RedisClientProtocol, *, ttl_seconds: int = 300) -> None:
        """Wrap *client*, expiring every snapshot after *ttl_seconds*."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        self._client = client
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def cache_key(prompt_id: str) -> str:
        """Format cache key for prompt entries."""
        return f"prompt:{prompt_id}"

    async def get(self, prompt_id: str) -> Prompt | None:
        """Return the cached snapshot for *prompt_id* when present."""
        try:
            cached_value = await self._client.get(self.cache_key(prompt_id))
        except RedisError as exc:
            raise PromptCacheError("Failed to read prompt from Redis") from exc
        if not cached_value:
            return None
        try:
            record = json.loads(_decode(cached_value))
        except json.JSONDecodeError as exc:
            logger.warning("Cannot decode cached prompt", extra={"prompt_id": prompt_id})
            raise PromptCacheError("Invalid JSON cached value") from exc
        return Prompt.from_record(record)

    async def put(self, prompt: Prompt) -> None:
        """Store *prompt* with the configured expiry."""
        payload = json.dumps(prompt.to_record(), ensure_ascii=False)
        try:
            await self._client.setex(self.cache_key(prompt.id), self._ttl_seconds, payload)
        except RedisError as exc:
            raise PromptCacheError("Failed to write prompt to Redis") from exc

    async def evict(self, prompt_id: str) -> None:
        """Remove the snapshot for *prompt_id*."""
        try:
            await self._client.delete(self.cache_key(prompt_id))
        except RedisError as exc:
            raise PromptCacheError("Failed to evict prompt from Redis") from exc

    async def close(self) -> None:
        """Release the underlying client connection pool."""
        try:
            await self._client.aclose()
        except RedisError:
            logger.warning("Redis client close failed", exc_info=True)


__all__ = ["RedisClientProtocol", "RedisRecordCache"]
