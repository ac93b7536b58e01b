"""Tests for the prompt API retry policy.

Updates:
  v0.1.0 - 2026-10-18 - Cover Retry-After parsing, delay caps, and attempt budgets.
"""

from __future__ import annotations

import httpx
import pytest

from retrieval.retry import (
    RetryPolicy,
    is_retryable_httpx_error,
    retry_after_seconds,
    send_with_retries,
)

_REQUEST = httpx.Request("POST", "https://prompts.example.test/rest/v1/rpc/search_prompts")


def _status_error(status: int, headers: dict[str, str] | None = None) -> httpx.HTTPStatusError:
    response = httpx.Response(status, headers=headers, request=_REQUEST)
    return httpx.HTTPStatusError("failed", request=_REQUEST, response=response)


def test_retryable_errors() -> None:
    assert is_retryable_httpx_error(_status_error(503))
    assert is_retryable_httpx_error(_status_error(429))
    assert is_retryable_httpx_error(httpx.ReadTimeout("slow", request=_REQUEST))
    assert not is_retryable_httpx_error(_status_error(401))
    assert not is_retryable_httpx_error(ValueError("boom"))


def test_retry_after_accepts_seconds_and_dates() -> None:
    assert retry_after_seconds(_status_error(429, {"Retry-After": "1.5"})) == 1.5
    past = {"Retry-After": "Wed, 21 Oct 2015 07:28:00 GMT"}
    assert retry_after_seconds(_status_error(503, past)) == 0.0
    assert retry_after_seconds(_status_error(429, {"Retry-After": "soon"})) is None
    assert retry_after_seconds(_status_error(500, {"Retry-After": "3"})) is None
    assert retry_after_seconds(_status_error(429)) is None


def test_requested_delay_is_capped_by_policy() -> None:
    policy = RetryPolicy(max_delay_seconds=2.0, jitter_fraction=0.0)

    assert policy.delay_for(1, _status_error(429, {"Retry-After": "30"})) == 2.0
    assert policy.delay_for(1, _status_error(429, {"Retry-After": "0.5"})) == 0.5
    assert policy.delay_for(2, _status_error(502)) == 0.5


@pytest.mark.asyncio()
async def test_attempt_budget_and_non_http_errors() -> None:
    calls: list[int] = []
    policy = RetryPolicy(max_attempts=2, base_delay_seconds=0.0, jitter_fraction=0.0)

    async def always_unavailable() -> None:
        calls.append(1)
        raise _status_error(503)

    with pytest.raises(httpx.HTTPStatusError):
        await send_with_retries(always_unavailable, policy=policy, label="search")
    assert len(calls) == 2

    async def broken() -> None:
        calls.append(1)
        raise RuntimeError("not an HTTP failure")

    with pytest.raises(RuntimeError):
        await send_with_retries(broken, policy=policy, label="search")
    assert len(calls) == 3
