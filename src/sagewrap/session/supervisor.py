"""Backend process supervision for the transcode path.

The supervisor spawns the transcode command, relays its stderr into the
command log, runs the control-stream emulator, forwards SIGINT/SIGTERM as
stop requests, and returns the backend's exit status once it is gone.
"""

from __future__ import annotations

import contextvars
import logging
import signal
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import sys
import threading
from collections.abc import Callable
from types import FrameType
from typing import BinaryIO

from sagewrap.core.subprocess_utils import status_from_returncode
from sagewrap.executor.types import Command
from sagewrap.logging import LogTag
from sagewrap.session.cancellation import StopController
from sagewrap.session.control import ControlChannelEmulator
from sagewrap.session.models import ControlMessage, Session
from sagewrap.session.termination import TerminationCoordinator

logger = logging.getLogger(__name__)

FORWARDED_SIGNALS = (signal.SIGINT, signal.SIGTERM)
STDERR_DRAIN_TIMEOUT = 5.0  # Seconds to wait for stderr relay after exit


class BackendSpawnError(Exception):
    """Raised when the backend process cannot be started."""

    def __init__(self, command: Command, error: OSError) -> None:
        super().__init__(f"failed to start {command.program}: {error}")
        self.command = command
        self.error = error


class ProcessSupervisor:
    """Runs one transcode session to completion.

    Example:
        supervisor = ProcessSupervisor(command, session, coordinator)
        status = supervisor.run()
    """

    def __init__(
        self,
        command: Command,
        session: Session,
        coordinator: TerminationCoordinator,
        *,
        control_stream: BinaryIO | None = None,
        relay_stderr: bool = True,
        hex_dump: bool = False,
        stderr_sink: BinaryIO | None = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        """Initialize the supervisor.

        Args:
            command: Transcode command to run.
            session: Session for this run; its process is attached on spawn.
            coordinator: Termination coordinator for stop requests.
            control_stream: Binary control stream, None disables emulation.
            relay_stderr: Pipe backend stderr into the log and on to our
                stderr. False lets the backend inherit stderr.
            hex_dump: Hex dump control lines into the log.
            stderr_sink: Where relayed stderr goes (default: sys.stderr).
            popen: Process factory, replaceable in tests.
        """
        self.command = command
        self.session = session
        self.coordinator = coordinator
        self.stop_controller = StopController(session, coordinator)
        self._control_stream = control_stream
        self._relay_stderr = relay_stderr
        self._hex_dump = hex_dump
        self._stderr_sink = stderr_sink
        self._popen = popen
        self._control: ControlChannelEmulator | None = None
        self._relay_thread: threading.Thread | None = None
        self._previous_handlers: dict[signal.Signals, object] = {}

    def _spawn(self) -> subprocess.Popen:
        try:
            return self._popen(  # nosec B603 - command built from config
                self.command.argv,
                stdin=subprocess.DEVNULL,
                stderr=subprocess.PIPE if self._relay_stderr else None,
            )
        except OSError as e:
            raise BackendSpawnError(self.command, e) from e

    def _handle_signal(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info(
            "Received %s, stopping backend", sig_name, extra={"tag": LogTag.INFO}
        )
        self.stop_controller.request(sig_name)

    def _install_signal_handlers(self) -> None:
        for sig in FORWARDED_SIGNALS:
            try:
                self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
            except ValueError as e:
                # Not in the main thread
                logger.warning("Failed to register handler for %s: %s", sig.name, e)

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def _relay(self, stream: BinaryIO) -> None:
        sink = self._stderr_sink or sys.stderr.buffer
        try:
            for raw in stream:
                text = raw.rstrip(b"\r\n").decode("utf-8", errors="replace")
                logger.info("%s", text, extra={"tag": LogTag.BACKEND})
                try:
                    sink.write(raw)
                    sink.flush()
                except (OSError, ValueError):
                    # Our own stderr went away; keep logging
                    pass
        except (OSError, ValueError) as e:
            logger.debug("Stderr relay stopped: %s", e)

    def _start_relay(self, process: subprocess.Popen) -> None:
        if process.stderr is None:
            return
        context = contextvars.copy_context()
        self._relay_thread = threading.Thread(
            target=context.run,
            args=(self._relay, process.stderr),
            daemon=True,
            name="backend-stderr",
        )
        self._relay_thread.start()

    def _on_control_stop(self, message: ControlMessage) -> None:
        self.stop_controller.request(f"control '{message.text}'")

    def _start_control(self) -> None:
        if self._control_stream is None:
            return
        self._control = ControlChannelEmulator(
            self._control_stream,
            on_stop=self._on_control_stop,
            hex_dump_enabled=self._hex_dump,
        )
        self._control.start()

    def run(self) -> int:
        """Spawn the backend, wait for it, clean up.

        Returns:
            The backend's exit status (128 + N if killed by signal N).

        Raises:
            BackendSpawnError: If the backend cannot be started.
        """
        process = self._spawn()
        self.session.attach(process)
        self._install_signal_handlers()
        try:
            self._start_relay(process)
            self._start_control()

            returncode = process.wait()
            if self._relay_thread is not None:
                self._relay_thread.join(STDERR_DRAIN_TIMEOUT)

            status = status_from_returncode(returncode)
            logger.info(
                "ffmpeg (session_tag=%s) exited with status %d",
                self.session.tag,
                status,
                extra={"tag": LogTag.INFO},
            )

            # A stale backend may still match this session's patterns
            self.coordinator.terminate(self.session)
            return status
        finally:
            if self._control is not None:
                self._control.stop()
            self._restore_signal_handlers()
