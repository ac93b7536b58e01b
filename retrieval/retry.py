"""Retry policy for prompt API requests.

Timeouts, transport errors, and 408/429/5xx responses are retried with
capped exponential backoff. A ``Retry-After`` header on a 429 or 503 response
replaces the computed delay, still bounded by the cap so a throttled search
cannot stall the session indefinitely.

Updates:
  v0.3.0 - 2026-10-18 - Honour Retry-After and log attempts with request context.
  v0.2.0 - 2026-10-14 - Keep only the async helper used by the HTTP prompt source.
  v0.1.0 - 2026-10-10 - Add async exponential backoff retry helper.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

logger = logging.getLogger("prompt_library.retry")

T = TypeVar("T")

_RETRY_AFTER_STATUSES = frozenset({429, 503})


def is_retryable_httpx_error(exc: BaseException) -> bool:
    """Return ``True`` when *exc* is a transient failure of the prompt API."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status in {408, 429} or status >= 500
    return isinstance(exc, httpx.TransportError)


def retry_after_seconds(exc: BaseException) -> float | None:
    """Return the delay a throttling response asked for, if any.

    Both forms of the header are accepted: delta seconds and an HTTP date.
    """
    if not isinstance(exc, httpx.HTTPStatusError):
        return None
    if exc.response.status_code not in _RETRY_AFTER_STATUSES:
        return None
    raw = (exc.response.headers.get("Retry-After") or "").strip()
    if not raw:
        return None
    try:
        seconds = float(raw)
    except ValueError:
        try:
            when = parsedate_to_datetime(raw)
        except (TypeError, ValueError):
            return None
        if when.tzinfo is None:
            when = when.replace(tzinfo=UTC)
        seconds = (when - datetime.now(UTC)).total_seconds()
    return max(0.0, seconds)


def backoff_delay(attempt: int, *, base: float, maximum: float, jitter: float) -> float:
    """Return the sleep before retry number *attempt* (1-based)."""
    delay = min(maximum, base * (2 ** (attempt - 1)))
    return delay + delay * jitter * random.random() if jitter > 0 else delay


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Attempt budget and delay bounds for one prompt API request."""

    max_attempts: int = 3
    base_delay_seconds: float = 0.25
    max_delay_seconds: float = 4.0
    jitter_fraction: float = 0.1

    def delay_for(self, attempt: int, exc: BaseException) -> float:
        """Return how long to wait after failed attempt *attempt*."""
        requested = retry_after_seconds(exc)
        if requested is not None:
            return min(requested, self.max_delay_seconds)
        return backoff_delay(
            attempt,
            base=self.base_delay_seconds,
            maximum=self.max_delay_seconds,
            jitter=self.jitter_fraction,
        )


async def send_with_retries(
    send: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    label: str,
    context: Mapping[str, Any] | None = None,
) -> T:
    """Await *send*, retrying transient httpx failures under *policy*.

    Non-httpx exceptions and non-retryable responses propagate immediately;
    the last failure propagates once the attempt budget is spent.
    """
    attempts = max(1, int(policy.max_attempts))
    attempt = 1
    while True:
        try:
            return await send()
        except httpx.HTTPError as exc:
            if attempt >= attempts or not is_retryable_httpx_error(exc):
                raise
            delay = policy.delay_for(attempt, exc)
            logger.warning(
                "Retrying %s after transient failure",
                label,
                extra={
                    **dict(context or {}),
                    "attempt": attempt,
                    "delay": delay,
                    "error": str(exc),
                },
            )
            if delay > 0:
                await asyncio.sleep(delay)
            attempt += 1


__all__ = [
    "RetryPolicy",
    "backoff_delay",
    "is_retryable_httpx_error",
    "retry_after_seconds",
    "send_with_retries",
]
