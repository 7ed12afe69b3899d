"""Logging setup for applications embedding the fusion engine."""
from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Configure console logging on the root logger.

    Does nothing when the root logger already has handlers, so host
    applications keep their own configuration.

    Args:
        level: Level name; defaults to `RAG_FUSION_LOG_LEVEL` or `INFO`.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level_name = (level or os.getenv("RAG_FUSION_LOG_LEVEL", "INFO")).upper()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.addHandler(handler)
