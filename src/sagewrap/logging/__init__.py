"""Command-log module for sagewrap.

Provides the tagged, timestamped diagnostic log with optional JSON format
and file rotation, plus session context propagation.
"""

from sagewrap.logging.config import configure_logging
from sagewrap.logging.context import (
    LogTag,
    LogTagFilter,
    format_tag,
    get_session_context,
    session_context,
    set_session_context,
)
from sagewrap.logging.handlers import JSONFormatter, text_formatter

__all__ = [
    "JSONFormatter",
    "LogTag",
    "LogTagFilter",
    "configure_logging",
    "format_tag",
    "get_session_context",
    "session_context",
    "set_session_context",
    "text_formatter",
]
