"""Transcode session lifecycle: supervision, control stream, termination."""

from sagewrap.session.cancellation import StopController
from sagewrap.session.control import ControlChannelEmulator, hex_dump
from sagewrap.session.models import (
    ControlKind,
    ControlMessage,
    Session,
    classify_control_line,
    new_session_tag,
)
from sagewrap.session.supervisor import BackendSpawnError, ProcessSupervisor
from sagewrap.session.termination import (
    TerminationAttempt,
    TerminationCoordinator,
    TerminationStrategy,
    escape_pattern,
)

__all__ = [
    "BackendSpawnError",
    "ControlChannelEmulator",
    "ControlKind",
    "ControlMessage",
    "ProcessSupervisor",
    "Session",
    "StopController",
    "TerminationAttempt",
    "TerminationCoordinator",
    "TerminationStrategy",
    "classify_control_line",
    "escape_pattern",
    "hex_dump",
    "new_session_tag",
]
