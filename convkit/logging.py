"""Logger setup shared by the convkit commands."""

from __future__ import annotations

import logging
from pathlib import Path

ROOT_LOGGER = "convkit"
CONSOLE_FORMAT = "[convkit] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Child logger of `convkit`, or the package logger itself when unnamed."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def _attach(
    logger: logging.Logger, handler: logging.Handler, level: int, fmt: str
) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logger.addHandler(handler)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route convkit records to stderr, and to `log_file` when given.

    Each call replaces the handlers installed by the previous one.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = get_logger()
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    _attach(logger, logging.StreamHandler(), level, CONSOLE_FORMAT)
    if log_file is not None:
        _attach(logger, logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT)
    return logger


__all__ = ["configure_logging", "get_logger"]
