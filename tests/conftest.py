"""Pytest configuration for shared test fixtures.

Updates:
  v0.2.0 - 2026-10-16 - Add prompt builders, a manual clock, and a recording source.
  v0.1.0 - 2026-10-11 - Clear PROMPT_LIBRARY_* variables between tests.
"""

from __future__ import annotations

import asyncio
import os
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from models.prompt_model import Prompt
from retrieval.exceptions import RemoteSourceError
from retrieval.query import Query
from retrieval.remote import AuthContext, InMemoryPromptSource, SearchPage

BASE_TIME = datetime(2026, 10, 1, 12, 0, tzinfo=UTC)
SIGNED_IN = AuthContext(user_id="user-1", access_token="token-1")


def make_prompt(prompt_id: str | int, **overrides: Any) -> Prompt:
    """Return a prompt with predictable defaults for tests."""
    index = int(prompt_id) if str(prompt_id).isdigit() else 0
    values: dict[str, Any] = {
        "id": str(prompt_id),
        "title": f"Prompt {prompt_id}",
        "content": f"Body of prompt {prompt_id}",
        "category": "Writing",
        "created_at": BASE_TIME + timedelta(days=index),
        "updated_at": BASE_TIME + timedelta(days=index),
    }
    values.update(overrides)
    return Prompt(**values)


class ManualClock:
    """Monotonic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class GatedSource(InMemoryPromptSource):
    """In-memory source whose searches wait until a test releases them."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.gates: list[asyncio.Event] = []
        self.queries: list[tuple[Query, str | None]] = []

    async def search(
        self,
        query: Query,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> SearchPage:
        gate = asyncio.Event()
        self.gates.append(gate)
        self.queries.append((query, cursor))
        await gate.wait()
        return await super().search(query, cursor=cursor, limit=limit)


class FlakySource(InMemoryPromptSource):
    """In-memory source that fails while ``fail`` is set."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.fail = False

    async def search(
        self,
        query: Query,
        *,
        cursor: str | None = None,
        limit: int = 20,
    ) -> SearchPage:
        if self.fail:
            self.search_calls += 1
            raise RemoteSourceError("connection reset")
        return await super().search(query, cursor=cursor, limit=limit)


class StubRedis:
    """Minimal redis.asyncio facade storing values in-memory for assertions."""

    def __init__(self) -> None:
        self.store: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}
        self.get_calls = 0
        self.closed = False

    async def get(self, name: str) -> bytes | None:
        self.get_calls += 1
        return self.store.get(name)

    async def setex(self, name: str, time: int, value: str | bytes) -> bool:
        self.store[name] = value.encode("utf-8") if isinstance(value, str) else bytes(value)
        self.ttls[name] = time
        return True

    async def delete(self, *names: str) -> int:
        return sum(1 for name in names if self.store.pop(name, None) is not None)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _clear_prompt_library_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Isolate tests from PROMPT_LIBRARY_* variables and local config files."""
    for key in list(os.environ):
        if key.startswith("PROMPT_LIBRARY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("PROMPT_LIBRARY_ENV_FILE", "")
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def sample_records() -> list[Prompt]:
    return [
        make_prompt(
            1,
            title="Blog outline writer",
            platforms=("Claude",),
            tags=("blog", "outline"),
            copy_count=10,
        ),
        make_prompt(
            2,
            title="Python code reviewer",
            category="Code",
            platforms=("ChatGPT",),
            tags=("python", "review"),
            average_rating=5.0,
            rating_count=3,
        ),
        make_prompt(
            3,
            title="Email polisher",
            platforms=("Claude", "ChatGPT"),
            tags=("email",),
            average_rating=4.0,
            rating_count=2,
            is_community=True,
        ),
        make_prompt(
            4,
            title="SQL explainer",
            category="Code",
            platforms=("Gemini",),
            tags=("sql",),
            description="Explains blog analytics queries",
        ),
    ]
