"""Application entry point for the prompt library CLI.

Updates:
  v0.2.1 - 2026-10-18 - Echo pipeline notices (search fallback, paging failures) to stdout.
  v0.2.0 - 2026-10-17 - Serve a local JSON dataset through the in-memory source.
  v0.1.0 - 2026-10-16 - Wire settings, retrieval session, and CLI commands.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import TYPE_CHECKING

from cli.commands import COMMAND_SPECS
from cli.parser import parse_args
from cli.runtime import configure_http_logging, setup_logging
from cli.settings_summary import print_settings_summary
from cli.utils import load_dataset, print_notice
from config import SettingsError, load_settings
from retrieval import AuthContext, InMemoryPromptSource, build_retrieval_session

if TYPE_CHECKING:
    import argparse

    from config import PromptLibrarySettings
    from retrieval import PromptSource

LOCAL_DATASET_USER = "local"


def _resolve_source(
    args: argparse.Namespace,
    logger: logging.Logger,
) -> tuple[PromptSource | None, AuthContext | None] | None:
    """Return the dataset-backed source when ``--dataset`` is set."""
    if args.dataset is None:
        return None, None
    try:
        records = load_dataset(args.dataset)
    except ValueError as exc:
        logger.error("Failed to load dataset: %s", exc)
        return None
    auth = AuthContext(user_id=LOCAL_DATASET_USER)
    logger.info("Loaded %s prompts from %s", len(records), args.dataset)
    return InMemoryPromptSource(records, auth=auth), auth


async def _run_command(
    settings: PromptLibrarySettings,
    args: argparse.Namespace,
    logger: logging.Logger,
) -> int:
    spec = COMMAND_SPECS.get(args.command)
    if spec is None:
        logger.error("No command given; use search, top, categories, or suggest.")
        return 1
    resolved = _resolve_source(args, logger)
    if resolved is None:
        return 2
    source, auth = resolved
    try:
        session = build_retrieval_session(settings, source=source, auth=auth)
    except Exception as exc:  # pragma: no cover - surfaced to CLI
        logger.error("Failed to initialise services: %s", exc)
        return 3
    with session.notices.subscribe(partial(print_notice, logger)):
        async with session:
            return await spec.handler(session, args, logger)


def main() -> int:
    """Entrypoint that wires settings, services, and CLI commands."""
    args = parse_args()
    setup_logging(args.logging_config)
    configure_http_logging(logging.getLogger().isEnabledFor(logging.DEBUG))

    logger = logging.getLogger("prompt_library.main")
    try:
        settings = load_settings()
    except SettingsError as exc:
        logger.error("Failed to load settings: %s", exc)
        return 2

    if args.print_settings:
        print_settings_summary(settings)
        return 0

    return asyncio.run(_run_command(settings, args, logger))


if __name__ == "__main__":
    raise SystemExit(main())
