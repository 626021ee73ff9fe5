"""Transcode session data types.

A Session identifies one transcode execution: the tag embedded in the
backend's output metadata, the input it reads, how its process space is
reached, and (once spawned) the local process handle.
"""

from __future__ import annotations

import os
import secrets
import subprocess  # nosec B404
from dataclasses import dataclass, field
from enum import Enum

SESSION_TAG_PREFIX = "sage"

# Control vocabulary: prefixes matched case-insensitively, plus exact words
STOP_PREFIXES = ("stop", "quit")
STOP_WORDS = ("q",)


def new_session_tag() -> str:
    """Create a session tag unique across concurrent wrapper processes.

    Combines this process id with a random component, e.g.
    ``sage4711_9f86d081``.
    """
    return f"{SESSION_TAG_PREFIX}{os.getpid()}_{secrets.token_hex(4)}"


@dataclass
class Session:
    """One transcode execution.

    ``tag``, ``input_path`` and ``exec_prefix`` are fixed at creation. The
    process handle is attached exactly once, right after spawn and before the
    control reader or signal handlers start; nothing reassigns it afterwards.
    """

    tag: str
    input_path: str
    exec_prefix: tuple[str, ...] | None = None
    """Indirection command reaching the backend's process space, or None."""

    process: subprocess.Popen | None = field(default=None, repr=False)

    @property
    def isolated(self) -> bool:
        """True when the backend runs behind an indirection command."""
        return bool(self.exec_prefix)

    def attach(self, process: subprocess.Popen) -> None:
        """Record the spawned backend process.

        Raises:
            RuntimeError: If a process is already attached.
        """
        if self.process is not None:
            raise RuntimeError(f"session {self.tag} already has a process")
        self.process = process


class ControlKind(Enum):
    """Classification of a control-stream line."""

    STOP = "stop"
    UNHANDLED = "unhandled"


@dataclass(frozen=True)
class ControlMessage:
    """A line received on the control stream."""

    text: str
    kind: ControlKind

    @property
    def is_stop(self) -> bool:
        return self.kind is ControlKind.STOP


def classify_control_line(line: str) -> ControlMessage:
    """Classify a control line as STOP or UNHANDLED.

    Lines starting with ``stop`` or ``quit`` (any case) and the single word
    ``q`` are stop requests. Trailing CR/LF are ignored.
    """
    text = line.rstrip("\r\n")
    folded = text.casefold()
    if folded.startswith(STOP_PREFIXES) or folded in STOP_WORDS:
        return ControlMessage(text, ControlKind.STOP)
    return ControlMessage(text, ControlKind.UNHANDLED)
