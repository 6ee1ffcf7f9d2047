"""Logging helpers for nicenudge.

Library modules only call ``get_logger(__name__)``. They log their decisions
(chosen bandwidths, grid sizes, inferred directions, kept row counts) at
DEBUG and soft fallbacks (unrecognized directions, dropped rows, unknown
option keys) at WARNING. Nothing here touches the root logger; an
application that configures logging receives nicenudge records through
normal propagation.

Scripts and notebooks that want to see those decisions call:
    ```python
    from nicenudge.utils.logging import configure_logging
    configure_logging(level="DEBUG")
    ```
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

PACKAGE_LOGGER = "nicenudge"

DEFAULT_FMT = "%(asctime)s [%(levelname)s] %(name)s:%(funcName)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Consulted when configure_logging() is called without a level
LOG_LEVEL_ENV_VAR = "NICENUDGE_LOG_LEVEL"


def resolve_level(level: Optional[Union[str, int]]) -> int:
    """Numeric logging level from an int, a level name or a numeric string.

    None reads NICENUDGE_LOG_LEVEL; unknown names fall back to INFO.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV_VAR, "INFO")
    if isinstance(level, int):
        return level
    text = str(level).strip()
    if text.isdigit():
        return int(text)
    value = logging.getLevelName(text.upper())
    return value if isinstance(value, int) else logging.INFO


def _owns_stderr_handler(logger: logging.Logger) -> bool:
    return any(
        isinstance(h, logging.StreamHandler) and h.stream is sys.stderr
        for h in logger.handlers
    )


def configure_logging(
    level: Optional[Union[str, int]] = None,
    *,
    fmt: Optional[str] = None,
    datefmt: Optional[str] = None,
    force: bool = False,
) -> logging.Logger:
    """Send nicenudge records to stderr at the given level.

    Args:
        level: Level as int or name. Defaults to NICENUDGE_LOG_LEVEL, else INFO.
        fmt: Record format. Defaults to DEFAULT_FMT.
        datefmt: Date format. Defaults to DEFAULT_DATEFMT.
        force: Replace existing handlers. Without it a second call only
            updates the level.

    Returns:
        The package logger.
    """
    numeric = resolve_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric)

    if force:
        for h in logger.handlers[:]:
            h.close()
            logger.removeHandler(h)
    elif _owns_stderr_handler(logger):
        for h in logger.handlers:
            h.setLevel(numeric)
        return logger

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric)
    console.setFormatter(logging.Formatter(fmt=fmt or DEFAULT_FMT, datefmt=datefmt or DEFAULT_DATEFMT))
    logger.addHandler(console)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for name, or the package logger when name is None."""
    return logging.getLogger(name or PACKAGE_LOGGER)
