"""Custom logging formatters for sagewrap.

Provides the tagged text format of the command log and JSONFormatter for
structured output.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

TEXT_FORMAT = "%(asctime)s %(log_tag)s %(message)s"
TEXT_DATEFMT = "%Y-%m-%d %H:%M:%S"


def text_formatter() -> logging.Formatter:
    """Formatter for ``2024-01-01 12:00:00 [INFO         ] message`` lines."""
    return logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATEFMT)


class JSONFormatter(logging.Formatter):
    """Format log records as JSON objects.

    Each log entry is a valid JSON object with:
    - timestamp: ISO-8601 UTC
    - level: Log level name
    - tag: Command-log tag (INFO, FFMPEG CMD, ...)
    - message: Log message
    - context: Additional context from record.extra
    """

    # Attributes every LogRecord carries, plus the ones LogTagFilter adds
    _STANDARD_ATTRS: frozenset[str] = frozenset(
        logging.makeLogRecord({}).__dict__
    ) | {"message", "taskName", "tag", "log_tag", "session_tag"}

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON-formatted string.
        """
        record_time = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: dict[str, Any] = {
            "timestamp": record_time.isoformat(),
            "level": record.levelname,
            "tag": getattr(record, "tag", "INFO"),
            "message": record.getMessage(),
        }

        if record.name and record.name != "root":
            log_entry["logger"] = record.name

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._STANDARD_ATTRS and not key.startswith("_")
        }

        session_tag = getattr(record, "session_tag", None)
        if session_tag:
            context["session_tag"] = session_tag

        if context:
            log_entry["context"] = context

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)
