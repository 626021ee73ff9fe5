"""Configuration data models.

This module defines dataclasses for sagewrap configuration options. Defaults
mirror the stock SageTV QSV setup so an empty environment still produces a
working wrapper.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

DEFAULT_LEGACY_BIN = "/opt/sagetv/server/ffmpeg.run"
DEFAULT_TRANSCODE_BIN = ("sudo", "docker", "exec", "ffmpeg_daemon", "ffmpeg")
DEFAULT_HW_INIT_ARGS = (
    "-init_hw_device",
    "qsv=hw:/dev/dri/renderD128",
    "-hwaccel",
    "qsv",
    "-hwaccel_device",
    "hw",
    "-hwaccel_output_format",
    "qsv",
)
DEFAULT_LOG_FILE = Path("/opt/sagetv/server/ffmpeg-commands.log")

# Container runtimes whose "exec" subcommand reaches into an isolated
# process space.
_ISOLATION_RUNTIMES = ("docker", "podman")


class AudioTrackMode(Enum):
    """Stream mapping mode for the transcode path."""

    DEFAULT = "default"  # No -map, backend picks its default streams
    ALL = "all"  # Map 0:v and every optional audio stream

    @classmethod
    def parse(cls, value: str) -> "AudioTrackMode | None":
        """Parse a configured mode, accepting all-lower or all-upper case.

        Returns:
            The matching mode, or None for unrecognized values.
        """
        if value in ("", "default", "DEFAULT"):
            return cls.DEFAULT
        if value in ("all", "ALL"):
            return cls.ALL
        return None


def detect_exec_prefix(transcode_bin: tuple[str, ...]) -> tuple[str, ...] | None:
    """Derive the indirection prefix from a container-exec transcode command.

    ``sudo docker exec ffmpeg_daemon ffmpeg`` yields
    ``sudo docker exec ffmpeg_daemon``. Options between ``exec`` and the
    container name are kept.

    Args:
        transcode_bin: Transcode executable prefix tokens.

    Returns:
        The prefix that runs a command inside the container, or None when the
        transcode command does not go through a container runtime.
    """
    for i, token in enumerate(transcode_bin[:-1]):
        if Path(token).name not in _ISOLATION_RUNTIMES:
            continue
        if transcode_bin[i + 1] != "exec":
            return None
        # First non-option token after "exec" is the container name
        for j in range(i + 2, len(transcode_bin)):
            if not transcode_bin[j].startswith("-"):
                # Nothing after the container means no program to exec
                if j == len(transcode_bin) - 1:
                    return None
                return transcode_bin[: j + 1]
        return None
    return None


@dataclass(frozen=True)
class BackendConfig:
    """Executables for the legacy and alternate backends."""

    legacy_bin: str = DEFAULT_LEGACY_BIN
    transcode_bin: tuple[str, ...] = DEFAULT_TRANSCODE_BIN

    # None = derive from transcode_bin, () = never isolated
    exec_prefix: tuple[str, ...] | None = None

    hw_init_args: tuple[str, ...] = DEFAULT_HW_INIT_ARGS

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.legacy_bin:
            raise ValueError("legacy_bin must not be empty")
        if not self.transcode_bin:
            raise ValueError("transcode_bin must not be empty")

    @property
    def isolation_prefix(self) -> tuple[str, ...] | None:
        """Command prefix that reaches the transcode backend's process space.

        None when the backend runs locally, in which case signalling the
        local process handle is sufficient.
        """
        if self.exec_prefix is not None:
            return self.exec_prefix or None
        return detect_exec_prefix(self.transcode_bin)


@dataclass(frozen=True)
class EncoderConfig:
    """Video filter and encoder settings for the transcode path."""

    deint_filter: str = "deinterlace_qsv"
    """Filter used when the request did not set a frame size. Empty disables."""

    deint_scale_filter_template: str = "deinterlace_qsv,scale_qsv=w=%w%:h=%h%"
    """Filter used when the request set a frame size. %w%/%h% are replaced."""

    video_codec: str = "hevc_qsv"
    preset_opt: str = "-preset"
    preset_value: str = "fast"
    extra_args: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.video_codec:
            raise ValueError("video_codec must not be empty")


@dataclass(frozen=True)
class RateControlConfig:
    """Derived bitrate multipliers and GOP clamp."""

    maxrate_multiplier: float = 1.5
    bufsize_multiplier: float = 3.0

    gop_clamp_max: str = "60"
    """Empty disables clamping; non-numeric values skip it with a log line."""


@dataclass(frozen=True)
class AudioConfig:
    """Audio handling for the transcode path."""

    reencode: bool = False
    """Re-encode to AC3 with the requested bitrate/rate/channels."""

    track_mode: AudioTrackMode = AudioTrackMode.ALL


@dataclass(frozen=True)
class DemuxConfig:
    """Demux probing knobs (startup latency vs robustness)."""

    probesize: str = "300000"
    analyzeduration: str = "300000"
    output_format: str = "mpegts"

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.output_format:
            raise ValueError("output_format must not be empty")


@dataclass(frozen=True)
class TriggerConfig:
    """Mode selection triggers."""

    vcodec: str = "mpeg4"
    """-vcodec value that routes to the alternate backend. Empty disables it."""

    copy_only_format: str = "dvd"
    """-f value that selects stream copy instead of transcode. Empty disables."""


@dataclass
class LoggingConfig:
    """Configuration for the diagnostic log stream."""

    enabled: bool = True

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = DEFAULT_LOG_FILE

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    # Hex dump each control-stream line
    control_hex_dump: bool = True

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class WrapperConfig:
    """Main configuration container for sagewrap."""

    backend: BackendConfig = field(default_factory=BackendConfig)
    encoder: EncoderConfig = field(default_factory=EncoderConfig)
    rate_control: RateControlConfig = field(default_factory=RateControlConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    demux: DemuxConfig = field(default_factory=DemuxConfig)
    triggers: TriggerConfig = field(default_factory=TriggerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
