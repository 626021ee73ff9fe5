"""Core utilities package."""

from sagewrap.core.subprocess_utils import (
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    returncode_for_oserror,
    run_command,
    status_from_returncode,
)

__all__ = [
    "EXIT_NOT_EXECUTABLE",
    "EXIT_NOT_FOUND",
    "returncode_for_oserror",
    "run_command",
    "status_from_returncode",
]
