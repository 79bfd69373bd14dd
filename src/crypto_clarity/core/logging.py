"""Logging configuration for the service."""

from __future__ import annotations

import logging

from crypto_clarity.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once, using LOG_LEVEL by default."""
    resolved = (level or settings.log_level).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("crypto_clarity").setLevel(resolved)
    # httpx logs every request at INFO; keep it quiet unless debugging.
    if not settings.debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
