"""Control-stream emulation for the transcode path.

The DVR controls a running ffmpeg by writing lines such as ``STOP`` to its
stdin (the legacy backend's ``-stdinctrl`` protocol). The containerized
backend knows nothing about this, so the wrapper reads the stream itself and
turns stop commands into termination requests.
"""

from __future__ import annotations

import contextvars
import logging
import threading
from collections.abc import Callable
from typing import BinaryIO

from sagewrap.logging import LogTag
from sagewrap.session.models import ControlMessage, classify_control_line

logger = logging.getLogger(__name__)

HEX_BYTES_PER_ROW = 16

StopCallback = Callable[[ControlMessage], None]


def hex_dump(data: bytes) -> list[str]:
    """Render bytes the way ``od -An -tx1 -v`` does.

    Each row holds up to 16 bytes, each written as a space and two hex
    digits.
    """
    return [
        "".join(f" {b:02x}" for b in data[i : i + HEX_BYTES_PER_ROW])
        for i in range(0, len(data), HEX_BYTES_PER_ROW)
    ]


class ControlChannelEmulator:
    """Reads the control stream on a background thread.

    Each line is logged (and optionally hex dumped), classified, and stop
    commands invoke ``on_stop``. End of stream is logged and otherwise
    ignored: the backend is expected to finish on its own.
    """

    def __init__(
        self,
        stream: BinaryIO,
        on_stop: StopCallback,
        hex_dump_enabled: bool = False,
    ) -> None:
        """Initialize the emulator.

        Args:
            stream: Binary control stream (normally the wrapper's stdin).
            on_stop: Called with the message for every stop command.
            hex_dump_enabled: Log a hex dump of every line.
        """
        self._stream = stream
        self._on_stop = on_stop
        self._hex_dump_enabled = hex_dump_enabled
        self._stopped = threading.Event()
        self._thread: threading.Thread | None = None
        self.stop_received = False

    def start(self) -> None:
        """Start reading on a daemon thread, carrying the logging context."""
        context = contextvars.copy_context()
        self._thread = threading.Thread(
            target=context.run,
            args=(self.run,),
            daemon=True,
            name="stdinctrl",
        )
        self._thread.start()

    def stop(self) -> None:
        """Stop handling lines.

        A blocked read cannot be interrupted; the daemon thread is abandoned
        and dies with the process.
        """
        self._stopped.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self) -> None:
        """Read lines until end of stream or stop()."""
        for raw in self._stream:
            if self._stopped.is_set():
                return
            self.handle_line(raw)

        if not self._stopped.is_set():
            logger.info(
                "STDINCTRL EOF detected (no automatic stop)",
                extra={"tag": LogTag.INFO},
            )

    def handle_line(self, raw: bytes) -> ControlMessage:
        """Log, classify and act on one raw control line."""
        line = raw.rstrip(b"\n")
        text = line.decode("utf-8", errors="replace")
        logger.info("%s", text, extra={"tag": LogTag.CONTROL_RAW})

        if self._hex_dump_enabled:
            for row in hex_dump(line + b"\n"):
                logger.info("%s", row, extra={"tag": LogTag.CONTROL_HEX})

        message = classify_control_line(text)
        if message.is_stop:
            self.stop_received = True
            logger.info(
                "stop command detected, calling stop_ffmpeg",
                extra={"tag": LogTag.CONTROL_HANDLED},
            )
            self._on_stop(message)
        else:
            logger.info(
                "command='%s'", message.text, extra={"tag": LogTag.CONTROL_UNHANDLED}
            )
        return message
