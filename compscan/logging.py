"""Logging setup shared by the compscan CLI, scanner and service."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT_LOGGER = "compscan"
CONSOLE_FORMAT = "[compscan] %(levelname)s %(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``compscan.<name>``, or the package logger when ``name`` is empty."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Route compscan records to stderr and, optionally, to ``log_file``.

    Scan progress (one line per file) is logged at INFO; per-file candidate
    and match counts only show up with ``verbose``.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False

    # Repeated CLI invocations in one process must not stack handlers.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.addHandler(_handler(logging.StreamHandler(sys.stderr), level, CONSOLE_FORMAT))
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.addHandler(
            _handler(logging.FileHandler(log_file, encoding="utf-8"), level, FILE_FORMAT)
        )
    return logger


def _handler(handler: logging.Handler, level: int, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


__all__ = ["configure_logging", "get_logger"]
