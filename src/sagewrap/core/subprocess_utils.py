"""Subprocess utilities for helper command invocation.

This module provides the wrapper used for short-lived helper commands (such
as ``pkill`` run through the container indirection prefix) with consistent
encoding, logging and error handling.
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for helper commands
import time
from typing import Any

logger = logging.getLogger(__name__)

# Shell conventions for commands that could not be started
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


def run_command(
    args: list[str],
    timeout: float | None = None,
    capture_output: bool = True,
    text: bool = True,
    errors: str = "replace",
    **kwargs: Any,
) -> tuple[str, str, int]:
    """Run external command with standard error handling.

    Args:
        args: Command and arguments.
        timeout: Timeout in seconds, None waits for the command indefinitely.
        capture_output: Capture stdout/stderr (default True).
        text: Return text instead of bytes (default True).
        errors: Error handling mode for text decoding (default "replace").
        **kwargs: Additional subprocess.run arguments.

    Returns:
        Tuple of (stdout, stderr, returncode).

    Raises:
        OSError: If the command cannot be started.
        subprocess.TimeoutExpired: If command times out. subprocess.run()
            kills the child before raising.
    """
    str_args = [str(arg) for arg in args]
    command_name = str_args[0].split("/")[-1] if str_args else "unknown"

    logger.debug(
        "Executing command: %s",
        " ".join(str_args),
        extra={"command": command_name, "arg_count": len(str_args)},
    )

    start_time = time.monotonic()
    result = subprocess.run(  # nosec B603 - caller validates args
        str_args,
        capture_output=capture_output,
        stdin=subprocess.DEVNULL,
        text=text,
        errors=errors if text else None,
        timeout=timeout,
        **kwargs,
    )

    elapsed = time.monotonic() - start_time
    logger.debug(
        "Command completed",
        extra={
            "command": command_name,
            "elapsed_seconds": round(elapsed, 3),
            "returncode": result.returncode,
        },
    )
    return result.stdout or "", result.stderr or "", result.returncode


def returncode_for_oserror(error: OSError) -> int:
    """Map a spawn failure to the exit status a shell would report."""
    if isinstance(error, FileNotFoundError):
        return EXIT_NOT_FOUND
    return EXIT_NOT_EXECUTABLE


def status_from_returncode(returncode: int) -> int:
    """Convert a Popen returncode to a process exit status.

    A child killed by signal N has returncode -N; shells report 128 + N.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode
