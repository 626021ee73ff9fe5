"""Request data types.

This module defines the record extracted from the DVR's ffmpeg invocation and
the execution mode chosen for it.
"""

from dataclasses import dataclass
from enum import Enum

# Substituted at transcode time when the request carried no -i
PLACEHOLDER_INPUT = "/var/media/unknown.ts"


class Mode(Enum):
    """How a request is executed."""

    PASSTHROUGH = "passthrough"  # Legacy backend, arguments untouched
    COPY_ONLY = "copy_only"  # Legacy backend, stream copy
    TRANSCODE = "transcode"  # Alternate (hardware) backend


@dataclass(frozen=True)
class RequestParameters:
    """Fields extracted from the upstream argument vector.

    Defaults match what the DVR assumes when it omits a flag, so a partial
    invocation still yields a usable record. Empty strings mean "not given"
    for fields that only produce output arguments when present.
    """

    vcodec: str = ""
    activefile: bool = False
    input_path: str = ""
    start_time: str = ""
    bitrate: str = "4M"
    framerate: str = "30000/1001"
    size: str = "1920x1080"
    size_set: bool = False
    gop: str = "300"
    bframes: str = "0"
    audio_bitrate: str = "128k"
    audio_rate: str = "48000"
    audio_channels: str = "2"
    format: str = ""
    packet_size: str = ""
    aspect: str = ""

    args: tuple[str, ...] = ()
    """The original argument vector, verbatim."""

    @property
    def width(self) -> str:
        """Width part of the frame size (text before the last 'x')."""
        return self.size.rpartition("x")[0] if "x" in self.size else self.size

    @property
    def height(self) -> str:
        """Height part of the frame size (text after the first 'x')."""
        return self.size.partition("x")[2] if "x" in self.size else self.size
