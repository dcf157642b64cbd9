"""Centralized logging configuration for the Course Shelf application."""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"


def resolve_log_level(name: str | int | None, default: int = logging.INFO) -> int:
    """Translate a level name such as ``"debug"`` into a :mod:`logging` constant."""

    if name is None:
        return default
    if isinstance(name, int):
        return name
    candidate = logging.getLevelName(name.strip().upper())
    if isinstance(candidate, int):
        return candidate
    raise ValueError(f"Unknown log level: {name!r}")


def configure_logging(level: int = logging.INFO, *, handlers: Iterable[logging.Handler] | None = None) -> Logger:
    """Configure the root logger, replacing handlers installed by a previous call."""

    logger = logging.getLogger()
    logger.setLevel(level)

    for existing in list(logger.handlers):
        if getattr(existing, "_courseshelf_managed", False):
            logger.removeHandler(existing)
            existing.close()

    if handlers is None:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        handlers = [stream_handler]

    for handler in handlers:
        handler._courseshelf_managed = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger


def get_log_file_path(storage_root: Path) -> Path:
    """Return the default path for the application log file."""

    return storage_root / "courseshelf.log"


__all__ = ["configure_logging", "get_log_file_path", "resolve_log_level", "DEFAULT_LOG_FORMAT"]
