"""Session context and record tags for the command log.

Every line of the command log carries a fixed-width bracketed tag naming the
kind of event (original command, transcode command, control line...). The
tag travels on the record via ``extra={"tag": LogTag.X}``; the active session
tag is propagated with contextvars so records emitted from the control reader
thread and the stderr relay thread are stamped too.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

# Width of the text between the brackets; longer tags are not truncated
TAG_WIDTH = 13


class LogTag(Enum):
    """Closed set of command-log tags."""

    ORIGINAL = "SAGETV/ORIG"
    COPY = "SAGETV/COPY"
    TRANSCODE = "FFMPEG CMD"
    CONTROL_RAW = "STDINCTRL RAW"
    CONTROL_HEX = "STDINCTRL HEX"
    CONTROL_HANDLED = "STDINCTRL HANDLED"
    CONTROL_UNHANDLED = "STDINCTRL UNHANDLED"
    BACKEND = "DOCKER/FFMPEG"
    INFO = "INFO"


_session_tag: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_tag", default=None
)


def set_session_context(session_tag: str | None) -> None:
    """Set the session tag stamped on subsequent records in this context."""
    _session_tag.set(session_tag)


def get_session_context() -> str | None:
    """Get the session tag of the current context, or None."""
    return _session_tag.get()


@contextmanager
def session_context(session_tag: str) -> Generator[None, None, None]:
    """Context manager for a transcode session.

    Sets the session tag on entry and restores the previous value on exit.

    Example:
        with session_context("sage1234_ab12cd34"):
            logger.info("ffmpeg exited")  # record.session_tag is set
    """
    old = _session_tag.get()
    try:
        _session_tag.set(session_tag)
        yield
    finally:
        _session_tag.set(old)


def format_tag(tag: LogTag | str) -> str:
    """Render a tag as ``[TAG          ]`` padded to TAG_WIDTH."""
    text = tag.value if isinstance(tag, LogTag) else str(tag)
    return f"[{text:<{TAG_WIDTH}}]"


class LogTagFilter(logging.Filter):
    """Logging filter that injects tag and session fields into log records.

    Adds ``tag`` (defaulting to INFO), the rendered ``log_tag`` used by the
    text format, and ``session_tag`` from the current context.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Enrich the record. Never filters anything out."""
        tag = getattr(record, "tag", None) or LogTag.INFO
        record.tag = tag.value if isinstance(tag, LogTag) else str(tag)
        record.log_tag = format_tag(tag)

        # A thread started outside session_context() can pass it explicitly
        if getattr(record, "session_tag", None) is None:
            record.session_tag = get_session_context()

        return True
