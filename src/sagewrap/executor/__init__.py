"""Backend command synthesis."""

from sagewrap.executor.command import (
    build_command,
    build_copy_command,
    build_passthrough_command,
    build_transcode_command,
    session_metadata,
)
from sagewrap.executor.types import Arg, ArgKind, Command, CommandBuilder

__all__ = [
    "Arg",
    "ArgKind",
    "Command",
    "CommandBuilder",
    "build_command",
    "build_copy_command",
    "build_passthrough_command",
    "build_transcode_command",
    "session_metadata",
]
