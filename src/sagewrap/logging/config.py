"""Logging configuration for sagewrap.

Provides configure_logging() to set up logging based on LoggingConfig.

The wrapper's stdout carries the media stream back to the DVR, so no handler
installed here ever writes to stdout.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from sagewrap.logging.context import LogTagFilter
from sagewrap.logging.handlers import JSONFormatter, text_formatter

if TYPE_CHECKING:
    from sagewrap.config.models import LoggingConfig

# Map of lowercase level names to logging module constants.
_LEVEL_MAP: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(config: LoggingConfig) -> None:
    """Configure logging based on LoggingConfig.

    Sets up handlers for file and/or stderr output with appropriate
    formatters. With logging disabled only a NullHandler is installed, so
    nothing is written anywhere.

    Args:
        config: Logging configuration.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    if not config.enabled:
        root_logger.addHandler(logging.NullHandler())
        root_logger.setLevel(logging.CRITICAL + 1)
        return

    level = _LEVEL_MAP.get(config.level.casefold(), logging.INFO)
    root_logger.setLevel(level)

    if config.format.casefold() == "json":
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = text_formatter()

    tag_filter = LogTagFilter()

    file_handler_added = False
    if config.file:
        try:
            file_path = Path(config.file).expanduser()
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(tag_filter)
            root_logger.addHandler(file_handler)
            file_handler_added = True
        except OSError as e:
            # Log file unavailable - fall back to stderr
            sys.stderr.write(f"Warning: Could not open log file {config.file}: {e}\n")

    if config.include_stderr or not file_handler_added:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(formatter)
        stderr_handler.addFilter(tag_filter)
        root_logger.addHandler(stderr_handler)
