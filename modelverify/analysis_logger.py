"""Loggers handed to the verifier.

The engine never reaches for a global logger: callers pass one in. The
default is a logger that discards everything.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "modelverify"

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def null_logger() -> logging.Logger:
    """A logger with no output that does not propagate to the root logger."""
    logger = logging.getLogger(f"{LOGGER_NAME}.null")
    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    logger.propagate = False
    return logger


def create_logger(
    level: str = "INFO",
    log_file: Optional[str] = None,
    name: str = LOGGER_NAME,
) -> logging.Logger:
    """Set up a logger writing to ``log_file``, or to stderr when none is given."""
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    # Remove existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_path)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    return logger
