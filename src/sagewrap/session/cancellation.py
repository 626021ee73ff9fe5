"""Single cancellation path for a transcode session.

Stop requests arrive from two places: OS signals delivered to the wrapper
(SIGINT/SIGTERM from the DVR) and STOP/QUIT lines on the control stream.
Both call StopController.request(), which runs the termination coordinator
and then sends SIGTERM to the local backend process.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from sagewrap.logging import LogTag

if TYPE_CHECKING:
    from sagewrap.session.models import Session
    from sagewrap.session.termination import TerminationCoordinator

logger = logging.getLogger(__name__)


class StopController:
    """Requests termination of a session's backend.

    Requests are cooperative: they only send signals. Repeated requests
    repeat the signals, which is harmless once the backend is gone.
    """

    def __init__(self, session: Session, coordinator: TerminationCoordinator) -> None:
        self._session = session
        self._coordinator = coordinator
        self._requested = threading.Event()
        self._reason: str | None = None

    @property
    def requested(self) -> bool:
        """True once any stop request has been made."""
        return self._requested.is_set()

    @property
    def reason(self) -> str | None:
        """Source of the first stop request."""
        return self._reason

    def request(self, reason: str) -> None:
        """Stop the backend: escalate inside the container, then SIGTERM locally.

        Args:
            reason: Short description of the request source, for the log.
        """
        if not self._requested.is_set():
            self._reason = reason
            self._requested.set()
        logger.info(
            "stop requested (%s) for session_tag=%s",
            reason,
            self._session.tag,
            extra={"tag": LogTag.INFO},
        )
        self._coordinator.terminate(self._session)
        self.signal_process()

    def signal_process(self) -> None:
        """Send SIGTERM to the local backend process if it is still running."""
        process = self._session.process
        if process is None:
            return
        try:
            process.terminate()
        except ProcessLookupError:
            # Exited between the liveness check and the kill
            pass
