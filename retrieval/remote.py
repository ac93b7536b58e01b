"""Remote prompt store adapters.

The remote store is an external collaborator: it owns the records and
exposes a paged search plus CRUD. :class:`HttpPromptSource` talks to a
PostgREST-style HTTP API with httpx; :class:`InMemoryPromptSource` serves a
fixed record list through the local filter engine and backs tests and the
``--dataset`` CLI mode.

Updates:
  v0.4.0 - 2026-10-18 - Await the asyncio Redis snapshot cache and add aclose().
  v0.3.0 - 2026-10-15 - Route single-record reads through the Redis snapshot cache.
  v0.2.0 - 2026-10-14 - Add CRUD calls and retry transient HTTP failures.
  v0.1.0 - 2026-10-12 - Introduce PromptSource protocol and paged SearchPage.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from models.prompt_model import Prompt

from .exceptions import (
    PromptCacheError,
    PromptMutationUnavailable,
    PromptNotFoundError,
    RemoteSourceError,
)
from .filtering import filter_records
from .query import fingerprint
from .retry import RetryPolicy, send_with_retries

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from .query import Query
    from .record_cache import RedisRecordCache

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(slots=True, frozen=True)
class AuthContext:
    """Current identity; an absent user disables mutations."""

    user_id: str | None = None
    access_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Return ``True`` when a user identity is present."""
        return bool(self.user_id)

    def require_user(self) -> str:
        """Return the user id or raise when nobody is signed in."""
        if not self.user_id:
            raise PromptMutationUnavailable("Sign in to modify prompts")
        return self.user_id


ANONYMOUS = AuthContext()


@dataclass(slots=True)
class SearchPage:
    """One page of search results in remote cursor order."""

    records: list[Prompt]
    next_cursor: str | None = None
    total_count: int | None = None

    @property
    def has_next_page(self) -> bool:
        """Return ``True`` when another page can be requested."""
        return self.next_cursor is not None


@runtime_checkable
class PromptSource(Protocol):
    """Protocol implemented by every remote prompt store adapter."""

    async def search(
        self,
        query: Query,
        *,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> SearchPage:
        """Return one page of records matching *query*."""
        ...

    async def get_prompt(self, prompt_id: str) -> Prompt:
        """Return the current snapshot of a single prompt."""
        ...

    async def create_prompt(self, payload: Mapping[str, Any]) -> Prompt:
        """Create a prompt and return the stored snapshot."""
        ...

    async def update_prompt(self, prompt_id: str, changes: Mapping[str, Any]) -> Prompt:
        """Apply *changes* and return the stored snapshot."""
        ...

    async def delete_prompt(self, prompt_id: str) -> None:
        """Delete a prompt."""
        ...

    async def aclose(self) -> None:
        """Release connections held by the adapter."""
        ...


def _clamp_limit(limit: int) -> int:
    return max(1, min(int(limit), MAX_PAGE_SIZE))


def _parse_rows(rows: Any) -> list[Prompt]:
    if not isinstance(rows, list):
        raise RemoteSourceError("Remote store returned a non-list payload")
    records: list[Prompt] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            records.append(Prompt.from_record(row))
        except (ValueError, TypeError, OverflowError) as exc:
            logger.warning("Skipping malformed prompt row", extra={"error": str(exc)})
    return records


def _parse_search_payload(payload: Any) -> SearchPage:
    if isinstance(payload, list):
        return SearchPage(records=_parse_rows(payload))
    if not isinstance(payload, dict):
        raise RemoteSourceError("Remote search returned an unexpected payload")
    next_cursor = payload.get("next_cursor")
    total = payload.get("total_count")
    try:
        total_count = int(total) if total is not None else None
    except (TypeError, ValueError, OverflowError):
        total_count = None
    return SearchPage(
        records=_parse_rows(payload.get("records") or []),
        next_cursor=str(next_cursor) if next_cursor not in (None, "") else None,
        total_count=total_count,
    )


@dataclass(slots=True)
class HttpPromptSource:
    """HTTPX-backed adapter for a PostgREST-style prompt API."""

    base_url: str
    api_key: str | None = None
    auth: AuthContext = ANONYMOUS
    timeout: float = 10.0
    max_attempts: int = 3
    record_cache: RedisRecordCache | None = None
    client_factory: Callable[[], httpx.AsyncClient] | None = None

    def __post_init__(self) -> None:
        """Validate and normalise the API base URL."""
        if not self.base_url or not self.base_url.strip():
            raise ValueError("Prompt API base URL is required")
        self.base_url = self.base_url.strip().rstrip("/")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        token = self.auth.access_token or self.api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        params: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> Any:
        manage_client = self.client_factory is None
        if self.client_factory is None:
            client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=self.timeout,
            )
        else:
            client = self.client_factory()
        request_headers = {**self._headers(), **dict(headers or {})}
        try:

            async def _send_request() -> httpx.Response:
                response = await client.request(
                    method,
                    path,
                    json=json_body,
                    params=params,
                    headers=request_headers,
                )
                response.raise_for_status()
                return response

            response = await send_with_retries(
                _send_request,
                policy=RetryPolicy(max_attempts=self.max_attempts),
                label=f"{method} {path}",
                context=context,
            )
        except httpx.HTTPError as exc:
            raise RemoteSourceError(f"{method} {path} failed: {exc}") from exc
        finally:
            if manage_client:
                await client.aclose()
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteSourceError("Remote store returned invalid JSON") from exc

    async def search(
        self,
        query: Query,
        *,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> SearchPage:
        """Call the ``search_prompts`` RPC with the canonical query payload."""
        body = {"query": query.to_payload(), "cursor": cursor, "limit": _clamp_limit(limit)}
        payload = await self._request(
            "POST",
            "/rest/v1/rpc/search_prompts",
            json_body=body,
            context={"fingerprint": fingerprint(query), "cursor": cursor},
        )
        return _parse_search_payload(payload)

    async def get_prompt(self, prompt_id: str) -> Prompt:
        """Return a prompt, consulting the Redis snapshot cache first."""
        cached = await self._cached(prompt_id)
        if cached is not None:
            return cached
        rows = await self._request("GET", "/rest/v1/prompts", params={"id": f"eq.{prompt_id}"})
        records = _parse_rows(rows or [])
        if not records:
            raise PromptNotFoundError(f"Prompt {prompt_id} not found")
        await self._remember(records[0])
        return records[0]

    async def create_prompt(self, payload: Mapping[str, Any]) -> Prompt:
        """Insert a prompt owned by the signed-in user."""
        user_id = self.auth.require_user()
        body = {**dict(payload), "user_id": user_id}
        rows = await self._request(
            "POST",
            "/rest/v1/prompts",
            json_body=body,
            headers={"Prefer": "return=representation"},
        )
        records = _parse_rows(rows or [])
        if not records:
            raise RemoteSourceError("Remote store did not return the created prompt")
        await self._remember(records[0])
        return records[0]

    async def update_prompt(self, prompt_id: str, changes: Mapping[str, Any]) -> Prompt:
        """Patch a prompt owned by the signed-in user."""
        self.auth.require_user()
        await self._forget(prompt_id)
        rows = await self._request(
            "PATCH",
            "/rest/v1/prompts",
            json_body=dict(changes),
            params={"id": f"eq.{prompt_id}"},
            headers={"Prefer": "return=representation"},
        )
        records = _parse_rows(rows or [])
        if not records:
            raise PromptNotFoundError(f"Prompt {prompt_id} not found")
        await self._remember(records[0])
        return records[0]

    async def delete_prompt(self, prompt_id: str) -> None:
        """Delete a prompt owned by the signed-in user."""
        self.auth.require_user()
        await self._forget(prompt_id)
        await self._request("DELETE", "/rest/v1/prompts", params={"id": f"eq.{prompt_id}"})

    # Snapshot cache helpers -------------------------------------------- #

    async def _cached(self, prompt_id: str) -> Prompt | None:
        if self.record_cache is None:
            return None
        try:
            return await self.record_cache.get(prompt_id)
        except PromptCacheError:
            logger.warning("Prompt snapshot cache read failed", extra={"prompt_id": prompt_id})
            return None

    async def _remember(self, prompt: Prompt) -> None:
        if self.record_cache is None:
            return
        try:
            await self.record_cache.put(prompt)
        except PromptCacheError:
            logger.warning("Prompt snapshot cache write failed", extra={"prompt_id": prompt.id})

    async def _forget(self, prompt_id: str) -> None:
        if self.record_cache is None:
            return
        try:
            await self.record_cache.evict(prompt_id)
        except PromptCacheError:
            logger.warning("Prompt snapshot cache eviction failed", extra={"prompt_id": prompt_id})

    async def aclose(self) -> None:
        """Close the snapshot cache; later reads go straight to the API."""
        record_cache, self.record_cache = self.record_cache, None
        if record_cache is not None:
            await record_cache.close()


class InMemoryPromptSource:
    """Serve a local record list with offset cursors through the filter engine."""

    def __init__(self, records: Iterable[Prompt] = (), *, auth: AuthContext = ANONYMOUS) -> None:
        """Seed the store with *records*."""
        self._records: dict[str, Prompt] = {record.id: record for record in records}
        self.auth = auth
        self.search_calls = 0

    @property
    def records(self) -> list[Prompt]:
        """Return the stored records."""
        return list(self._records.values())

    async def search(
        self,
        query: Query,
        *,
        cursor: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> SearchPage:
        """Return the page starting at the integer offset encoded in *cursor*."""
        self.search_calls += 1
        try:
            offset = max(0, int(cursor)) if cursor else 0
        except ValueError as exc:
            raise RemoteSourceError(f"Invalid cursor {cursor!r}") from exc
        matched = filter_records(self._records.values(), query)
        size = _clamp_limit(limit)
        page = matched[offset : offset + size]
        end = offset + len(page)
        return SearchPage(
            records=page,
            next_cursor=str(end) if end < len(matched) else None,
            total_count=len(matched),
        )

    async def get_prompt(self, prompt_id: str) -> Prompt:
        """Return the stored prompt or raise when it is unknown."""
        try:
            return self._records[prompt_id]
        except KeyError as exc:
            raise PromptNotFoundError(f"Prompt {prompt_id} not found") from exc

    async def create_prompt(self, payload: Mapping[str, Any]) -> Prompt:
        """Store a new prompt built from *payload*."""
        self.auth.require_user()
        now = datetime.now(UTC).isoformat()
        record = Prompt.from_record(
            {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now, **dict(payload)}
        )
        self._records[record.id] = record
        return record

    async def update_prompt(self, prompt_id: str, changes: Mapping[str, Any]) -> Prompt:
        """Merge *changes* into the stored prompt."""
        self.auth.require_user()
        current = await self.get_prompt(prompt_id)
        merged = {
            **current.to_record(),
            **dict(changes),
            "id": prompt_id,
            "updated_at": datetime.now(UTC).isoformat(),
        }
        record = Prompt.from_record(merged)
        self._records[prompt_id] = record
        return record

    async def delete_prompt(self, prompt_id: str) -> None:
        """Remove a prompt; unknown identifiers raise ``PromptNotFoundError``."""
        self.auth.require_user()
        if self._records.pop(prompt_id, None) is None:
            raise PromptNotFoundError(f"Prompt {prompt_id} not found")

    async def aclose(self) -> None:
        return None


__all__ = [
    "ANONYMOUS",
    "AuthContext",
    "DEFAULT_PAGE_SIZE",
    "HttpPromptSource",
    "InMemoryPromptSource",
    "PromptSource",
    "SearchPage",
]
