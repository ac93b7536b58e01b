"""Runtime boot helpers for the prompt library CLI.

Updates:
  v0.1.1 - 2026-10-17 - Quiet httpx request logs unless debugging.
  v0.1.0 - 2026-10-16 - Extract logging configuration helpers.
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path


def setup_logging(logging_conf_path: Path | None) -> None:
    """Configure logging using *logging_conf_path* when available."""
    path = logging_conf_path or Path("config/logging.conf")
    if path.exists():
        try:
            logging.config.fileConfig(path, disable_existing_loggers=False)
            return
        except Exception:  # pragma: no cover - configuration fallback
            pass
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def configure_http_logging(verbose: bool) -> None:
    """Raise or restore the httpx/httpcore loggers."""
    for name in ("httpx", "httpcore"):
        http_logger = logging.getLogger(name)
        http_logger.setLevel(logging.NOTSET if verbose else logging.WARNING)
