"""Tests for the HTTP and in-memory prompt sources.

Updates:
  v0.3.0 - 2026-10-18 - Cover non-finite metrics, retry logging, and aclose().
  v0.2.0 - 2026-10-15 - Cover Redis snapshot reads and retry behaviour.
  v0.1.0 - 2026-10-12 - Cover search payloads and error mapping.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from conftest import SIGNED_IN, StubRedis, make_prompt

from retrieval.exceptions import (
    PromptMutationUnavailable,
    PromptNotFoundError,
    RemoteSourceError,
)
from retrieval.query import Query, fingerprint
from retrieval.record_cache import RedisRecordCache
from retrieval.remote import ANONYMOUS, HttpPromptSource, InMemoryPromptSource

BASE_URL = "https://prompts.example.test"


def _row(prompt_id: str, **overrides: Any) -> dict[str, Any]:
    return make_prompt(prompt_id, **overrides).to_record()


def _source(
    handler: Callable[[httpx.Request], httpx.Response],
    **kwargs: Any,
) -> tuple[HttpPromptSource, httpx.AsyncClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    kwargs.setdefault("auth", SIGNED_IN)
    source = HttpPromptSource(
        base_url=f"{BASE_URL}/",
        api_key="anon-key",
        client_factory=lambda: client,
        **kwargs,
    )
    return source, client


@pytest.fixture(autouse=True)
def _no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("retrieval.retry.backoff_delay", lambda *_, **__: 0.0)


@pytest.mark.asyncio()
async def test_search_posts_canonical_query_and_parses_page() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"records": [_row("1"), _row("2")], "next_cursor": 2, "total_count": 45},
        )

    source, client = _source(handler)
    page = await source.search(Query(platforms=("claude",)), limit=500)
    await client.aclose()

    assert source.base_url == BASE_URL
    assert [record.id for record in page.records] == ["1", "2"]
    assert page.next_cursor == "2"
    assert page.total_count == 45
    assert page.has_next_page

    request = requests[0]
    assert request.method == "POST"
    assert request.url.path == "/rest/v1/rpc/search_prompts"
    assert json.loads(request.content) == {
        "query": {"sort": "updated_desc", "platforms": ["claude"]},
        "cursor": None,
        "limit": 100,
    }
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer token-1"


@pytest.mark.asyncio()
async def test_list_payload_is_a_final_page_and_skips_malformed_rows() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[_row("1"), {"title": "no id"}, "junk"])

    source, client = _source(handler)
    page = await source.search(Query())
    await client.aclose()

    assert [record.id for record in page.records] == ["1"]
    assert page.next_cursor is None
    assert not page.has_next_page


@pytest.mark.asyncio()
async def test_non_finite_numbers_do_not_break_page_parsing() -> None:
    body = (
        b'{"records": [{"id": "1", "title": "Infinite", "copy_count": Infinity},'
        b' {"id": "2", "created_at": "yesterday"}],'
        b' "next_cursor": "1", "total_count": 1e999}'
    )

    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body, headers={"Content-Type": "application/json"})

    source, client = _source(handler)
    page = await source.search(Query())
    await client.aclose()

    assert [record.id for record in page.records] == ["1"]
    assert page.records[0].copy_count == 0
    assert page.total_count is None
    assert page.next_cursor == "1"


@pytest.mark.asyncio()
async def test_transient_failures_are_retried() -> None:
    statuses = [503, 429, 200]

    def handler(_: httpx.Request) -> httpx.Response:
        status = statuses.pop(0)
        if status != 200:
            return httpx.Response(status, json={"message": "busy"})
        return httpx.Response(200, json=[_row("1")])

    source, client = _source(handler, max_attempts=3)
    page = await source.search(Query())
    await client.aclose()

    assert statuses == []
    assert [record.id for record in page.records] == ["1"]


@pytest.mark.asyncio()
async def test_client_errors_are_not_retried() -> None:
    calls: list[int] = []

    def handler(_: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(401, json={"message": "bad token"})

    source, client = _source(handler)
    with pytest.raises(RemoteSourceError):
        await source.search(Query())
    await client.aclose()

    assert len(calls) == 1


@pytest.mark.asyncio()
async def test_transport_errors_become_remote_source_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    source, client = _source(handler, max_attempts=2)
    with pytest.raises(RemoteSourceError):
        await source.search(Query())
    await client.aclose()


@pytest.mark.asyncio()
async def test_invalid_json_and_payload_shapes_are_rejected() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("search_prompts"):
            return httpx.Response(200, content=b"not json")
        return httpx.Response(200, json={"unexpected": True})

    source, client = _source(handler)
    with pytest.raises(RemoteSourceError):
        await source.search(Query())
    with pytest.raises(RemoteSourceError):
        await source.get_prompt("1")
    await client.aclose()


@pytest.mark.asyncio()
async def test_get_prompt_reads_through_snapshot_cache() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url.params["id"]))
        return httpx.Response(200, json=[_row("7", title="Cached")])

    redis_client = StubRedis()
    source, client = _source(handler, record_cache=RedisRecordCache(redis_client, ttl_seconds=60))

    first = await source.get_prompt("7")
    second = await source.get_prompt("7")
    await client.aclose()

    assert first == second
    assert second.title == "Cached"
    assert calls == ["eq.7"]
    assert redis_client.ttls["prompt:7"] == 60


@pytest.mark.asyncio()
async def test_update_evicts_snapshot_and_stores_result() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        assert request.headers["Prefer"] == "return=representation"
        return httpx.Response(200, json=[_row("7", title="Updated")])

    redis_client = StubRedis()
    cache = RedisRecordCache(redis_client)
    await cache.put(make_prompt("7", title="Stale"))
    source, client = _source(handler, record_cache=cache)

    stored = await source.update_prompt("7", {"title": "Updated"})
    await client.aclose()

    assert stored.title == "Updated"
    assert await cache.get("7") == stored


@pytest.mark.asyncio()
async def test_missing_prompt_raises_not_found() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    source, client = _source(handler)
    with pytest.raises(PromptNotFoundError):
        await source.get_prompt("404")
    await client.aclose()


@pytest.mark.asyncio()
async def test_create_stamps_signed_in_user() -> None:
    bodies: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json=[_row("9", title="Fresh")])

    source, client = _source(handler)
    stored = await source.create_prompt({"title": "Fresh", "user_id": "someone-else"})
    await client.aclose()

    assert stored.id == "9"
    assert bodies == [{"title": "Fresh", "user_id": "user-1"}]


@pytest.mark.asyncio()
async def test_writes_require_a_signed_in_user() -> None:
    def handler(_: httpx.Request) -> httpx.Response:  # pragma: no cover - never reached
        raise AssertionError("no request expected")

    source, client = _source(handler, auth=ANONYMOUS)
    with pytest.raises(PromptMutationUnavailable):
        await source.delete_prompt("1")
    with pytest.raises(PromptMutationUnavailable):
        await source.update_prompt("1", {"title": "x"})
    await client.aclose()


def test_base_url_is_required() -> None:
    with pytest.raises(ValueError):
        HttpPromptSource(base_url="   ")


@pytest.mark.asyncio()
async def test_in_memory_source_pages_with_offset_cursors() -> None:
    source = InMemoryPromptSource([make_prompt(i) for i in range(1, 6)])

    first = await source.search(Query(), limit=2)
    second = await source.search(Query(), cursor=first.next_cursor, limit=2)
    last = await source.search(Query(), cursor=second.next_cursor, limit=2)

    assert [record.id for record in first.records] == ["5", "4"]
    assert [record.id for record in second.records] == ["3", "2"]
    assert [record.id for record in last.records] == ["1"]
    assert last.next_cursor is None
    assert first.total_count == 5

    with pytest.raises(RemoteSourceError):
        await source.search(Query(), cursor="abc")


@pytest.mark.asyncio()
async def test_aclose_releases_snapshot_cache() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[_row("7")])

    redis_client = StubRedis()
    source, client = _source(handler, record_cache=RedisRecordCache(redis_client))

    await source.aclose()
    await source.aclose()
    await source.get_prompt("7")
    await client.aclose()

    assert redis_client.closed
    assert source.record_cache is None
    assert redis_client.store == {}


@pytest.mark.asyncio()
async def test_search_retries_are_logged_with_fingerprint(
    caplog: pytest.LogCaptureFixture,
) -> None:
    statuses = [429, 200]

    def handler(_: httpx.Request) -> httpx.Response:
        status = statuses.pop(0)
        if status != 200:
            return httpx.Response(status, headers={"Retry-After": "0"})
        return httpx.Response(200, json=[_row("1")])

    source, client = _source(handler)
    query = Query(text="blog")
    with caplog.at_level(logging.WARNING, logger="prompt_library.retry"):
        await source.search(query, cursor="20")
    await client.aclose()

    [record] = [entry for entry in caplog.records if entry.name == "prompt_library.retry"]
    assert "POST /rest/v1/rpc/search_prompts" in record.getMessage()
    assert record.fingerprint == fingerprint(query)  # type: ignore[attr-defined]
    assert record.cursor == "20"  # type: ignore[attr-defined]
