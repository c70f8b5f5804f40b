"""Logging configuration helpers."""

import logging
from typing import Optional

from ..exceptions import ConfigurationError

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

DEFAULT_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def parse_level(verbosity: str) -> int:
    """Map a verbosity name to a logging level.

    Raises:
        ConfigurationError: If the name is not a known level
    """
    try:
        return LEVELS[verbosity.strip().lower()]
    except KeyError:
        raise ConfigurationError(f"not a valid logging level: {verbosity!r}") from None


def setup_logging(
    verbosity: str = "warning",
    fmt: str = DEFAULT_FORMAT,
    datefmt: Optional[str] = None,
) -> None:
    """Configure root logging for the given verbosity.

    Args:
        verbosity: Level name such as "debug", "info" or "warning"
        fmt: Log message format string
        datefmt: Optional date format string

    Raises:
        ConfigurationError: If ``verbosity`` is not a known level
    """
    logging.basicConfig(
        level=parse_level(verbosity),
        format=fmt,
        datefmt=datefmt,
        force=True,
    )
