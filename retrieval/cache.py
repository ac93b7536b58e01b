"""Fingerprint-keyed result cache with ttl expiry, LRU bound, and invalidation.

The cache is owned by a retrieval session and only touched from the event
loop thread, so it carries no locks. Every invalidation bumps a generation
counter; searches capture the generation when they are issued and their
late writes are refused once an invalidation has happened in between.

Updates:
  v0.4.0 - 2026-10-18 - Store entries in a cachetools TTLCache on the injected clock.
  v0.3.0 - 2026-10-15 - Add generation guard and targeted invalidation policy.
  v0.2.0 - 2026-10-13 - Track hit/miss counters and expose CacheStats.
  v0.1.0 - 2026-10-11 - Initial ttl + LRU cache keyed by query fingerprint.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from cachetools import TTLCache

from .exceptions import FingerprintCollisionError
from .filtering import matches

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from models.prompt_model import Prompt

    from .query import Query

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_CAPACITY = 50


class InvalidationPolicy(str, Enum):
    """How record mutations invalidate cached result sets."""

    ALL = "all"
    MATCHING = "matching"


@dataclass(slots=True)
class CacheEntry:
    """Cached result pages for one query fingerprint."""

    query: Query
    records: list[Prompt]
    fetched_at: float
    ttl: float
    page_cursor: str | None = None
    has_next_page: bool = False
    total_count: int | None = None
    hit_count: int = 0
    last_access: float = field(default=0.0, compare=False)

    def contains(self, record_id: str) -> bool:
        """Return ``True`` when a snapshot of *record_id* is cached here."""
        return any(record.id == record_id for record in self.records)


@dataclass(slots=True, frozen=True)
class CacheStats:
    """Diagnostic counters exposed to the presentation layer."""

    total_entries: int
    valid_entries: int
    expired_entries: int
    hits: int
    misses: int

    @property
    def hit_rate(self) -> float:
        """Return hits / lookups, or ``0.0`` before the first lookup."""
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0

    def to_dict(self) -> dict[str, float | int]:
        """Return a serialisable representation of the counters."""
        return {
            "total_entries": self.total_entries,
            "valid_entries": self.valid_entries,
            "expired_entries": self.expired_entries,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hit_rate,
        }


class ResultCache:
    """Bounded mapping of query fingerprints to cached result pages.

    Entries live in a :class:`cachetools.TTLCache` driven by the injected
    clock, which supplies both the ttl expiry and the least-recently-used
    bound. This class layers the generation guard, the collision check, and
    the hit/miss counters on top.
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        policy: InvalidationPolicy = InvalidationPolicy.ALL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Configure expiry, the LRU capacity bound, and the mutation policy."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be greater than zero")
        if capacity <= 0:
            raise ValueError("capacity must be a positive integer")
        self._ttl = float(ttl_seconds)
        self._capacity = capacity
        self._policy = InvalidationPolicy(policy)
        self._clock = clock
        self._entries: TTLCache[str, CacheEntry] = TTLCache(
            maxsize=capacity,
            ttl=self._ttl,
            timer=clock,
        )
        self._generation = 0
        self._hits = 0
        self._misses = 0

    @property
    def ttl(self) -> float:
        """Return the default ttl applied to new entries."""
        return self._ttl

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def generation(self) -> int:
        """Return the invalidation generation counter."""
        return self._generation

    @property
    def policy(self) -> InvalidationPolicy:
        """Return the invalidation policy applied on record mutations."""
        return self._policy

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries

    def new_entry(
        self,
        query: Query,
        records: Sequence[Prompt],
        *,
        page_cursor: str | None = None,
        has_next_page: bool = False,
        total_count: int | None = None,
    ) -> CacheEntry:
        """Return a fresh entry stamped with the current clock."""
        now = self._clock()
        return CacheEntry(
            query=query,
            records=list(records),
            fetched_at=now,
            ttl=self._ttl,
            page_cursor=page_cursor,
            has_next_page=has_next_page,
            total_count=total_count,
            last_access=now,
        )

    def get(self, fingerprint: str, query: Query | None = None) -> CacheEntry | None:
        """Return the fresh entry stored under *fingerprint*, if any.

        Expired entries read as absent and are evicted. When *query* is
        supplied the stored query must equal it.
        """
        entry = self._entries.get(fingerprint)
        if entry is None:
            self._misses += 1
            expired = self.purge_expired()
            if expired:
                logger.debug(
                    "Evicted expired cache entries",
                    extra={"fingerprint": fingerprint, "expired": expired},
                )
            return None
        if query is not None and entry.query != query:
            raise FingerprintCollisionError(
                f"Fingerprint {fingerprint!r} maps to {entry.query!r} and {query!r}"
            )
        entry.hit_count += 1
        entry.last_access = self._clock()
        self._hits += 1
        return entry

    def put(self, fingerprint: str, entry: CacheEntry, *, generation: int | None = None) -> bool:
        """Store *entry*, evicting the least recently used entry when full.

        Returns ``False`` without storing when *generation* predates the most
        recent invalidation.
        """
        if generation is not None and generation != self._generation:
            logger.debug(
                "Discarded cache write issued before an invalidation",
                extra={"fingerprint": fingerprint, "generation": generation},
            )
            return False
        existing = self._entries.get(fingerprint)
        if existing is not None and existing.query != entry.query:
            raise FingerprintCollisionError(
                f"Fingerprint {fingerprint!r} maps to {existing.query!r} and {entry.query!r}"
            )
        if existing is not None:
            entry.hit_count = existing.hit_count
        self._entries[fingerprint] = entry
        return True

    def append_page(
        self,
        fingerprint: str,
        records: Sequence[Prompt],
        *,
        page_cursor: str | None,
        has_next_page: bool,
        total_count: int | None = None,
        generation: int | None = None,
    ) -> CacheEntry | None:
        """Append a fetched page to the entry for *fingerprint* in arrival order.

        Returns the updated entry, or ``None`` when the entry is gone or the
        write predates an invalidation. The entry keeps its original expiry.
        """
        if generation is not None and generation != self._generation:
            return None
        entry = self._entries.get(fingerprint)
        if entry is None:
            return None
        entry.records.extend(records)
        entry.page_cursor = page_cursor
        entry.has_next_page = has_next_page
        if total_count is not None:
            entry.total_count = total_count
        return entry

    def invalidate(self, fingerprint: str | None = None) -> int:
        """Drop one entry, or every entry when *fingerprint* is ``None``."""
        self._generation += 1
        if fingerprint is None:
            removed = len(self._entries)
            self._entries.clear()
        else:
            removed = 1 if self._entries.pop(fingerprint, None) is not None else 0
        logger.debug(
            "Invalidated cache entries",
            extra={"removed": removed, "generation": self._generation},
        )
        return removed

    def invalidate_for_records(self, records: Iterable[Prompt]) -> int:
        """Invalidate entries that could include any version of *records*.

        Pass every known version of a mutated record (before and after an
        update). The ``ALL`` policy clears the whole cache.
        """
        versions = list(records)
        if self._policy is InvalidationPolicy.ALL or not versions:
            return self.invalidate()
        stale = []
        # Keys are snapshotted first: reading an entry reorders the LRU links.
        for key in list(self._entries):
            entry = self._entries.get(key)
            if entry is None:
                continue
            if any(
                entry.contains(record.id) or matches(record, entry.query) for record in versions
            ):
                stale.append(key)
        self._generation += 1
        for key in stale:
            self._entries.pop(key, None)
        logger.debug(
            "Invalidated matching cache entries",
            extra={"removed": len(stale), "generation": self._generation},
        )
        return len(stale)

    def purge_expired(self) -> int:
        """Evict every expired entry and return how many were removed."""
        before = len(self._entries)
        self._entries.expire()
        return before - len(self._entries)

    def clear(self) -> None:
        """Drop every entry and reset counters."""
        self.invalidate()
        self._hits = 0
        self._misses = 0

    def stats(self) -> CacheStats:
        """Return entry and hit-rate counters.

        ``total_entries`` still counts expired entries awaiting eviction.
        """
        total = len(self._entries)
        valid = sum(1 for _ in self._entries)
        return CacheStats(
            total_entries=total,
            valid_entries=valid,
            expired_entries=total - valid,
            hits=self._hits,
            misses=self._misses,
        )


__all__ = [
    "CacheEntry",
    "CacheStats",
    "DEFAULT_CAPACITY",
    "DEFAULT_TTL_SECONDS",
    "InvalidationPolicy",
    "ResultCache",
]
