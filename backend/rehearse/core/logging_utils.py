"""Centralized logging configuration for the RehearseAI backend."""

from __future__ import annotations

import logging
import os
from logging import Logger
from typing import Iterable, Optional


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL_ENV = "REHEARSE_LOG_LEVEL"


def resolve_log_level(raw: Optional[str] = None) -> int:
    """Translate a level name such as ``"debug"`` into a ``logging`` constant."""

    raw = raw if raw is not None else os.getenv(LOG_LEVEL_ENV, "INFO")
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[int] = None, *, handlers: Iterable[logging.Handler] | None = None) -> Logger:
    """Configure the root logger once with sensible defaults."""

    logger = logging.getLogger()
    logger.setLevel(level if level is not None else resolve_log_level())

    if handlers is None:
        if not logger.handlers:
            stream_handler = logging.StreamHandler()
            stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
            logger.addHandler(stream_handler)
    else:
        for handler in handlers:
            logger.addHandler(handler)

    return logger


__all__ = ["configure_logging", "resolve_log_level", "DEFAULT_LOG_FORMAT"]
