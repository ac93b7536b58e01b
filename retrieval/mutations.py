"""Create, update, and delete prompts while keeping cached results consistent.

Cache invalidation runs synchronously before the remote call is awaited and
again once it completes: a search issued before the mutation carries a stale
cache generation and cannot write back, and one issued while the mutation was
pending is dropped by the second invalidation.

Updates:
  v0.3.1 - 2026-10-18 - Notify the owner when optimistic edits change loaded records.
  v0.3.0 - 2026-10-18 - Read the stored snapshot before updating prompts not held locally.
  v0.2.0 - 2026-10-17 - Roll back optimistic copies when the remote call fails.
  v0.1.0 - 2026-10-15 - Introduce PromptMutationService with optimistic local copies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from models.prompt_model import Prompt

from .exceptions import PromptLibraryError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from .executor import SearchExecutor
    from .loader import IncrementalLoader

logger = logging.getLogger("prompt_library.mutations")


class PromptMutationService:
    """Apply prompt mutations through the remote source of a search executor."""

    def __init__(
        self,
        executor: SearchExecutor,
        loader: IncrementalLoader | None = None,
        *,
        refresh: Callable[[], object] | None = None,
        on_local_change: Callable[[], object] | None = None,
    ) -> None:
        """Share the executor's source, cache, and notices.

        *refresh* re-runs the active query; *on_local_change* runs whenever an
        optimistic edit or rollback changes the loaded records.
        """
        self._executor = executor
        self._loader = loader
        self._refresh = refresh or executor.refresh
        self._on_local_change = on_local_change

    def _invalidate(self, *versions: Prompt | None) -> int:
        return self._executor.cache.invalidate_for_records(
            version for version in versions if version is not None
        )

    async def create(self, payload: Mapping[str, Any]) -> Prompt:
        """Create a prompt and refresh the active query."""
        user_id = self._executor.auth.require_user()
        self._invalidate()
        title = str(payload.get("title") or "prompt")
        with self._executor.notices.track(
            title="Create prompt",
            success_message=f"Created {title}",
            failure_message=f"Could not create {title}",
        ):
            stored = await self._executor.source.create_prompt({"user_id": user_id, **payload})
        self._invalidate(stored)
        self._executor.remember([stored])
        logger.info("Prompt created", extra={"prompt_id": stored.id})
        self._refresh()
        return stored

    async def update(self, prompt_id: str, changes: Mapping[str, Any]) -> Prompt:
        """Apply *changes* optimistically, then reconcile with the stored snapshot."""
        self._executor.auth.require_user()
        previous = self._executor.local_record(prompt_id) or await self._current(prompt_id)
        optimistic = None
        if previous is not None:
            optimistic = Prompt.from_record({**previous.to_record(), **changes, "id": prompt_id})
            self._apply_local(optimistic)
        self._invalidate(previous, optimistic)
        try:
            with self._executor.notices.track(
                title="Update prompt",
                success_message="Prompt updated",
                failure_message="Could not update prompt",
                metadata={"prompt_id": prompt_id},
            ):
                stored = await self._executor.source.update_prompt(prompt_id, changes)
        except Exception:
            if previous is not None:
                self._apply_local(previous)
            raise
        self._invalidate(previous, optimistic, stored)
        self._apply_local(stored)
        logger.info("Prompt updated", extra={"prompt_id": prompt_id})
        self._refresh()
        return stored

    async def delete(self, prompt_id: str) -> None:
        """Remove the prompt locally, then delete it remotely."""
        self._executor.auth.require_user()
        previous = self._executor.forget(prompt_id)
        index = self._loader.discard(prompt_id) if self._loader is not None else None
        self._local_changed()
        self._invalidate(previous)
        try:
            with self._executor.notices.track(
                title="Delete prompt",
                success_message="Prompt deleted",
                failure_message="Could not delete prompt",
                metadata={"prompt_id": prompt_id},
            ):
                await self._executor.source.delete_prompt(prompt_id)
        except Exception:
            if previous is not None:
                self._executor.remember([previous])
                if self._loader is not None and index is not None:
                    self._loader.restore(previous, index)
                    self._local_changed()
            raise
        self._invalidate(previous)
        logger.info("Prompt deleted", extra={"prompt_id": prompt_id})
        self._refresh()

    async def _current(self, prompt_id: str) -> Prompt | None:
        """Read the stored snapshot of a prompt that is not held locally."""
        try:
            return await self._executor.source.get_prompt(prompt_id)
        except PromptLibraryError as exc:
            logger.debug(
                "No stored snapshot before update",
                extra={"prompt_id": prompt_id, "error": str(exc)},
            )
            return None

    def _apply_local(self, record: Prompt) -> None:
        self._executor.remember([record])
        if self._loader is not None:
            self._loader.upsert(record)
            self._local_changed()

    def _local_changed(self) -> None:
        if self._on_local_change is not None:
            self._on_local_change()


__all__ = ["PromptMutationService"]
