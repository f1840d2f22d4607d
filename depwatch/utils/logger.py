"""
Logging utilities for depwatch.

All depwatch loggers live under the ``depwatch`` namespace. Library code
only ever calls :func:`get_logger`; the CLI calls :func:`setup_logging`
once with a level derived from the ``-v`` flags. User-facing output goes
through :mod:`depwatch.utils.console` instead.
"""

from __future__ import annotations

import os
import sys
import logging
import threading
from typing import IO, Optional

from depwatch.constants import (
    LOG_DATE_FORMAT,
    LOG_DEFAULT_FORMAT,
    LOG_VERBOSE_FORMAT,
)

#: Root logger name for the package.
LOGGER_NAMESPACE = "depwatch"

_logging_configured: bool = False
_lock = threading.Lock()


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: str,
        *,
        datefmt: Optional[str] = None,
        use_color: bool = True,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if not (color and self.use_color and _stderr_supports_color()):
            return super().format(record)

        # The record is shared with other handlers; restore it afterwards.
        original = record.levelname
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _stderr_supports_color() -> bool:
    """Return True when stderr is an interactive terminal without NO_COLOR/CI."""
    if os.environ.get("NO_COLOR") or os.environ.get("CI"):
        return False
    try:
        return sys.stderr.isatty()
    except (AttributeError, OSError):
        return False


def level_for_verbosity(verbose: int) -> int:
    """Map the number of ``-v`` flags to a logging level.

    Examples:
        >>> level_for_verbosity(0) == logging.WARNING
        True
        >>> level_for_verbosity(2) == logging.DEBUG
        True
    """
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    return logging.DEBUG


def setup_logging(
    *,
    level: int = logging.INFO,
    verbose: bool = False,
    stream: Optional[IO[str]] = None,
) -> None:
    """Install a single stream handler on the ``depwatch`` logger.

    Calling this again replaces the previous handler, so repeated CLI
    invocations in one process (tests) never duplicate output.

    Args:
        level: Logging level (e.g., ``logging.INFO``).
        verbose: Use the timestamped format that includes the logger name.
        stream: Output stream; defaults to ``sys.stderr``.
    """
    global _logging_configured

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        ColoredFormatter(
            LOG_VERBOSE_FORMAT if verbose else LOG_DEFAULT_FORMAT,
            datefmt=LOG_DATE_FORMAT,
            use_color=not os.environ.get("NO_COLOR"),
        )
    )

    with _lock:
        root_logger = logging.getLogger(LOGGER_NAMESPACE)
        root_logger.handlers.clear()
        root_logger.setLevel(level)
        root_logger.addHandler(handler)
        root_logger.propagate = False
        _logging_configured = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a logger within the ``depwatch`` namespace.

    ``get_logger("engine")`` and ``get_logger("depwatch.engine")`` return
    the same logger.
    """
    if not name or name == LOGGER_NAMESPACE:
        logger = logging.getLogger(LOGGER_NAMESPACE)
    elif name.startswith(f"{LOGGER_NAMESPACE}."):
        logger = logging.getLogger(name)
    else:
        logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")

    # Stay silent when used as a library without configuration
    if not logger.handlers and (not logger.parent or not logger.parent.handlers):
        logger.addHandler(logging.NullHandler())

    return logger


def is_logging_configured() -> bool:
    """Return True if :func:`setup_logging` has run."""
    return _logging_configured


def disable_logging() -> None:
    """Silence all depwatch logging output."""
    global _logging_configured

    with _lock:
        root_logger = logging.getLogger(LOGGER_NAMESPACE)
        root_logger.handlers.clear()
        root_logger.addHandler(logging.NullHandler())
        root_logger.setLevel(logging.NOTSET)
        _logging_configured = False
