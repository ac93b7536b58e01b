"""Publish/subscribe hub for non-fatal notices raised by the pipeline.

Remote failures recovered through the local fallback, rejected mutations,
and similar recoverable conditions are surfaced here instead of raising.

Updates:
  v0.2.0 - 2026-10-15 - Add track() context manager for mutation workflows.
  v0.1.0 - 2026-10-12 - Introduce notice centre with bounded history.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger("prompt_library.notices")


class NoticeLevel(str, Enum):
    """Severity levels communicated to listeners."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class Notice:
    """Payload describing one notice event."""

    title: str
    message: str
    level: NoticeLevel = NoticeLevel.INFO
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    duration_ms: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return a serialisable representation of the notice."""
        return {
            "id": str(self.id),
            "title": self.title,
            "message": self.message,
            "level": self.level.value,
            "timestamp": self.timestamp.isoformat(),
            "duration_ms": self.duration_ms,
            "metadata": dict(self.metadata),
        }


class NoticeSubscription:
    """Disposable handle that removes its callback when closed."""

    def __init__(self, center: NoticeCenter, callback: Callable[[Notice], None]) -> None:
        """Remember the callback so it can be detached later."""
        self._center = center
        self._callback = callback
        self._closed = False

    def close(self) -> None:
        """Detach the stored callback if it is still active."""
        if self._closed:
            return
        self._closed = True
        self._center.unsubscribe(self._callback)

    def __enter__(self) -> NoticeSubscription:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()


class NoticeCenter:
    """Event-loop local hub delivering notices to subscribers."""

    def __init__(self, history_limit: int = 100) -> None:
        """Initialise the subscriber registry and bounded history queue."""
        self._subscribers: list[Callable[[Notice], None]] = []
        self._history: deque[Notice] = deque(maxlen=history_limit)

    def subscribe(self, callback: Callable[[Notice], None]) -> NoticeSubscription:
        """Register *callback* to receive future notices."""
        self._subscribers.append(callback)
        return NoticeSubscription(self, callback)

    def unsubscribe(self, callback: Callable[[Notice], None]) -> None:
        """Remove a previously subscribed callback if present."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def publish(self, notice: Notice) -> None:
        """Deliver *notice* to every registered subscriber."""
        self._history.append(notice)
        logger.debug(
            "Notice event",
            extra={"title": notice.title, "level": notice.level.value},
        )
        for callback in list(self._subscribers):
            try:
                callback(notice)
            except Exception:  # pragma: no cover - keep one bad listener from starving others
                logger.exception("Notice subscriber raised an exception")

    def warn(self, title: str, message: str, **metadata: Any) -> Notice:
        """Publish and return a warning notice."""
        notice = Notice(title=title, message=message, level=NoticeLevel.WARNING, metadata=metadata)
        self.publish(notice)
        return notice

    def history(self) -> tuple[Notice, ...]:
        """Return a snapshot of stored notices."""
        return tuple(self._history)

    @contextmanager
    def track(
        self,
        *,
        title: str,
        success_message: str,
        failure_message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Iterator[None]:
        """Publish a success or failure notice around the wrapped block."""
        started_at = time.perf_counter()
        try:
            yield
        except Exception as exc:
            message = failure_message or f"{title} failed"
            self.publish(
                Notice(
                    title=title,
                    message=f"{message}: {exc}",
                    level=NoticeLevel.ERROR,
                    duration_ms=int((time.perf_counter() - started_at) * 1000),
                    metadata=dict(metadata or {}),
                )
            )
            raise
        else:
            self.publish(
                Notice(
                    title=title,
                    message=success_message,
                    level=NoticeLevel.SUCCESS,
                    duration_ms=int((time.perf_counter() - started_at) * 1000),
                    metadata=dict(metadata or {}),
                )
            )


__all__ = ["Notice", "NoticeCenter", "NoticeLevel", "NoticeSubscription"]
