"""Exit codes for the sagewrap command.

Exit code ranges:
    0: Success
    10-19: Configuration errors
    126-127: Backend could not be started (shell convention)

Passthrough and copy-only requests replace the wrapper process, so the DVR
sees the legacy backend's own status. Transcode requests exit with the
backend's status, 128 + N when it was killed by signal N.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Exit codes produced by the wrapper itself."""

    # Success (0)
    SUCCESS = 0

    # Configuration errors (10-19)
    CONFIG_ERROR = 11

    # Backend spawn errors
    CANNOT_EXECUTE = 126
    COMMAND_NOT_FOUND = 127


def exit_code_for_spawn_error(error: OSError) -> ExitCode:
    """Map a failed exec/spawn of a backend to the wrapper's exit code."""
    if isinstance(error, FileNotFoundError):
        return ExitCode.COMMAND_NOT_FOUND
    return ExitCode.CANNOT_EXECUTE
