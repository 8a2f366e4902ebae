from __future__ import annotations

import logging
import os

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def setup_logging(level: str | int | None = None) -> None:
    """
    Route crawl progress to stderr.

    ``level`` wins over CRAWLER_LOG_LEVEL; unknown names fall back to INFO.
    The per-request counter and queue messages are INFO, parser and writer
    hand-offs are DEBUG.
    """
    if level is None:
        level = os.getenv("CRAWLER_LOG_LEVEL", "INFO")

    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    # aiohttp's access chatter is not crawl progress.
    logging.getLogger("aiohttp").setLevel(max(level, logging.WARNING))
