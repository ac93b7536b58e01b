"""Prompt record snapshot model.

Updates:
  v0.3.0 - 2026-10-14 - Add search_fields helper used by local text matching.
  v0.2.0 - 2026-10-12 - Track platform tags, folder, and community/template flags.
  v0.1.0 - 2026-10-10 - Initial read-only prompt snapshot with record helpers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from .category_model import dedupe_labels

if TYPE_CHECKING:
    from collections.abc import Mapping


def _utc_now() -> datetime:
    """Return an aware UTC timestamp."""
    return datetime.now(UTC)


def _ensure_datetime(value: Any) -> datetime:
    """Parse incoming datetime values (isoformat strings or datetime)."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if value is None or value == "":
        return _utc_now()
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _coerce_int(value: Any) -> int:
    if value is None:
        return 0
    try:
        return max(0, int(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def _coerce_float(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True, slots=True)
class Prompt:
    """Read-only snapshot of a prompt owned by the remote store."""

    id: str
    title: str
    content: str
    category: str
    description: str | None = None
    platforms: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    folder_id: str | None = None
    copy_count: int = 0
    usage_count: int = 0
    average_rating: float = 0.0
    rating_count: int = 0
    is_featured: bool = False
    is_community: bool = False
    is_template: bool = False
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def search_fields(self) -> tuple[str, ...]:
        """Return the text fields consulted by free-text matching."""
        return (
            self.title,
            self.description or "",
            self.content,
            *self.tags,
            *self.platforms,
        )

    def to_record(self) -> dict[str, Any]:
        """Return the remote row representation of the prompt."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "description": self.description,
            "category": self.category,
            "platforms": list(self.platforms),
            "tags": list(self.tags),
            "folder_id": self.folder_id,
            "copy_count": self.copy_count,
            "usage_count": self.usage_count,
            "average_rating": self.average_rating,
            "rating_count": self.rating_count,
            "is_featured": self.is_featured,
            "is_community": self.is_community,
            "is_template": self.is_template,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_record(cls, data: Mapping[str, Any]) -> Prompt:
        """Create a Prompt from a remote row, coercing nullable columns."""
        if data.get("id") in (None, ""):
            raise ValueError("prompt record is missing an id")
        created_at = _ensure_datetime(data.get("created_at"))
        return cls(
            id=str(data["id"]),
            title=str(data.get("title") or ""),
            content=str(data.get("content") or data.get("prompt_text") or ""),
            description=_optional_text(data.get("description")),
            category=str(data.get("category") or ""),
            platforms=tuple(dedupe_labels(data.get("platforms"))),
            tags=tuple(dedupe_labels(data.get("tags"))),
            folder_id=_optional_text(data.get("folder_id")),
            copy_count=_coerce_int(data.get("copy_count")),
            usage_count=_coerce_int(data.get("usage_count")),
            average_rating=_coerce_float(data.get("average_rating")),
            rating_count=_coerce_int(data.get("rating_count")),
            is_featured=bool(data.get("is_featured") or False),
            is_community=bool(data.get("is_community") or False),
            is_template=bool(data.get("is_template") or False),
            created_at=created_at,
            updated_at=_ensure_datetime(data.get("updated_at") or created_at),
        )


__all__ = ["Prompt"]
