"""Escalating termination of a containerized backend.

When the transcode backend runs behind an indirection command (for example
``sudo docker exec ffmpeg_daemon``), signalling the local ``docker exec``
client does not reliably stop the ffmpeg inside the container. The
coordinator therefore reaches into the container and signals the backend by
pattern, escalating through three strategies:

1. SIGTERM to processes whose command line carries the session tag
   (embedded as output metadata, unique per session).
2. SIGTERM to processes whose command line contains the input path.
3. SIGKILL to the same input-path match, as the last resort.

Each strategy runs only if the previous one reported failure. Every attempt
is safe to repeat: a pattern that matches nothing just returns non-zero.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from sagewrap.core.subprocess_utils import returncode_for_oserror, run_command
from sagewrap.executor.command import session_metadata
from sagewrap.logging import LogTag
from sagewrap.session.models import Session

logger = logging.getLogger(__name__)

# Characters with meaning in a POSIX extended regular expression
_ERE_SPECIAL = frozenset("\\.^$*+?()[]{}|")

CommandRunner = Callable[[list[str]], int]


class TerminationStrategy(Enum):
    """Termination strategies, in escalation order."""

    SESSION_TAG = "session_tag"
    INPUT_PATH = "input_file"
    INPUT_PATH_KILL = "input_file_kill"

    @property
    def signal_name(self) -> str:
        return "KILL" if self is TerminationStrategy.INPUT_PATH_KILL else "TERM"


@dataclass(frozen=True)
class TerminationAttempt:
    """One strategy invocation and its result."""

    strategy: TerminationStrategy
    pattern: str
    returncode: int

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


def escape_pattern(text: str) -> str:
    """Escape ``text`` so pkill -f matches it literally."""
    return "".join(f"\\{c}" if c in _ERE_SPECIAL else c for c in text)


def _run_quietly(args: list[str]) -> int:
    """Run a helper command, reporting spawn failures as a return code."""
    try:
        _, stderr, returncode = run_command(args)
    except OSError as e:
        logger.warning("Could not run %s: %s", args[0], e)
        return returncode_for_oserror(e)
    if stderr.strip():
        logger.debug("%s stderr: %s", args[0], stderr.strip())
    return returncode


class TerminationCoordinator:
    """Runs the escalating stop protocol for a session.

    Example:
        coordinator = TerminationCoordinator()
        attempts = coordinator.terminate(session)
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        pkill: str = "pkill",
    ) -> None:
        """Initialize the coordinator.

        Args:
            runner: Executes a command and returns its exit status. Defaults
                to a subprocess runner that never raises.
            pkill: Name of the pattern-kill tool inside the isolated
                environment.
        """
        self._runner = runner or _run_quietly
        self._pkill = pkill

    def _signal(
        self,
        prefix: Sequence[str],
        strategy: TerminationStrategy,
        pattern: str,
    ) -> TerminationAttempt:
        args = [*prefix, self._pkill, f"-{strategy.signal_name}", "-f", pattern]
        returncode = self._runner(args)
        return TerminationAttempt(strategy, pattern, returncode)

    def terminate(self, session: Session) -> list[TerminationAttempt]:
        """Stop the session's backend inside its isolated environment.

        A no-op for non-isolated sessions, where signalling the local process
        handle is enough. Never raises.

        Args:
            session: The session to stop.

        Returns:
            The attempts made, in order. Empty for non-isolated sessions.
        """
        logger.info(
            "stop_ffmpeg called for input=%s session_tag=%s using_docker=%s",
            session.input_path,
            session.tag,
            str(session.isolated).lower(),
            extra={"tag": LogTag.INFO},
        )
        if not session.isolated:
            return []

        prefix = session.exec_prefix or ()
        attempts: list[TerminationAttempt] = []

        attempt = self._signal(
            prefix, TerminationStrategy.SESSION_TAG, session_metadata(session.tag)
        )
        attempts.append(attempt)
        logger.info(
            "pkill by session_tag rc=%d", attempt.returncode, extra={"tag": LogTag.INFO}
        )
        if attempt.succeeded or not session.input_path:
            return attempts

        path_pattern = escape_pattern(session.input_path)
        attempt = self._signal(prefix, TerminationStrategy.INPUT_PATH, path_pattern)
        attempts.append(attempt)
        logger.info(
            "pkill by input_file rc=%d", attempt.returncode, extra={"tag": LogTag.INFO}
        )
        if attempt.succeeded:
            return attempts

        attempt = self._signal(
            prefix, TerminationStrategy.INPUT_PATH_KILL, path_pattern
        )
        attempts.append(attempt)
        logger.info(
            "pkill -KILL by input_file issued rc=%d",
            attempt.returncode,
            extra={"tag": LogTag.INFO},
        )
        return attempts
