"""Logging configuration for mediamatch.

Everything logs through module loggers under the ``mediamatch`` namespace.
The CLI calls setup_logging() once; library users may configure logging
themselves and never call it.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER_NAME = "mediamatch"

# HTTP client libraries log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")

FILE_FORMAT = "%(asctime)s | %(levelname)-5s | [%(name)s] %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_console_handler: logging.Handler | None = None


def _build_console_handler(level: int, *, rich_console: bool) -> logging.Handler:
    if not rich_console:
        plain = logging.StreamHandler(sys.stderr)
        plain.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        plain.setLevel(level)
        return plain

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
        # File names contain brackets that rich would read as markup
        markup=False,
    )
    handler.setLevel(level)
    return handler


def _build_file_handler(log_file: Path | str) -> logging.Handler:
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
    return handler


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | str | None = None,
    rich_console: bool = True,
    quiet_console: bool = False,
) -> logging.Logger:
    """
    Configure the ``mediamatch`` logger.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path; the file always receives DEBUG output
        rich_console: Use a rich handler for console output
        quiet_console: Only show WARNING+ on the console (keeps result tables readable)

    Returns:
        The configured ``mediamatch`` logger
    """
    global _console_handler
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.handlers.clear()
    logger.propagate = False

    console_level = logging.WARNING if quiet_console else level
    _console_handler = _build_console_handler(console_level, rich_console=rich_console)
    logger.addHandler(_console_handler)

    if log_file:
        logger.addHandler(_build_file_handler(log_file))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return logger


def set_console_quiet(quiet: bool = True) -> None:
    """Toggle quiet mode (WARNING+ only) for the console handler."""
    if _console_handler is not None:
        _console_handler.setLevel(logging.WARNING if quiet else logging.INFO)
