"""Shared CLI utility functions for prompt library commands.

Updates:
  v0.2.0 - 2026-10-18 - Echo pipeline notices by severity; mask secrets with a visible width.
  v0.1.0 - 2026-10-16 - Extract stdout logging, masking, and metric formatting helpers.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from models.prompt_model import Prompt
from retrieval import Notice, NoticeLevel

_NOTICE_LOG_LEVELS = {
    NoticeLevel.INFO: logging.INFO,
    NoticeLevel.SUCCESS: logging.INFO,
    NoticeLevel.WARNING: logging.WARNING,
    NoticeLevel.ERROR: logging.ERROR,
}


def print_notice(logger: logging.Logger, notice: Notice) -> None:
    """Log *notice* at its severity and echo ``title: message`` to stdout.

    Notice metadata (query fingerprint, prompt id) travels as log record extras.
    """
    text = f"{notice.title}: {notice.message}" if notice.message else notice.title
    logger.log(
        _NOTICE_LOG_LEVELS.get(notice.level, logging.INFO),
        text,
        extra={"notice_level": notice.level.value, **notice.metadata},
    )
    print(text)


def mask_secret(value: str | None, *, visible: int = 4) -> str:
    """Return a masked form of an API key or access token.

    Only *visible* characters from each end are shown, and only when the secret
    is long enough that both ends do not overlap.
    """
    secret = (value or "").strip()
    if not secret:
        return "not set"
    if len(secret) <= visible * 2 - 2 or visible <= 0:
        return "set (****)"
    return f"set ({secret[:visible]}...{secret[-visible:]})"


def format_metric(value: float | None, *, suffix: str = "") -> str:
    """Return display-friendly metric text with optional *suffix*."""
    if value is None:
        return "n/a"
    formatted = f"{value:.2f}" if abs(value) < 1000 else f"{value:.0f}"
    return f"{formatted}{suffix}" if suffix else formatted


def load_dataset(path: Path) -> list[Prompt]:
    """Return prompts parsed from a JSON array (or ``{"prompts": [...]}``) file."""
    try:
        content = path.expanduser().read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Unable to read {path}: {exc}") from exc
    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("prompts")
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON array of prompts")
    return [Prompt.from_record(row) for row in data if isinstance(row, dict)]
