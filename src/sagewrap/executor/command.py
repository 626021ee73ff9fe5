"""Backend command synthesis.

This module builds the final argument list for each execution mode:

- Passthrough: the legacy ffmpeg.run with the DVR's arguments untouched.
- Copy only: the legacy ffmpeg.run stream-copying into the output container,
  keeping its native -stdinctrl support.
- Transcode: the alternate backend (typically ffmpeg in a container with
  hardware acceleration), with derived rate control and filters, tagged with
  the session id so it can be found again for termination.

Builders are pure apart from informational logging: the same request and
configuration always produce the same Command.
"""

from __future__ import annotations

import logging

from sagewrap.config.models import AudioTrackMode, WrapperConfig
from sagewrap.executor.types import Command, CommandBuilder
from sagewrap.logging import LogTag
from sagewrap.request.derive import DerivedParameters, derive_parameters
from sagewrap.request.models import Mode, RequestParameters

logger = logging.getLogger(__name__)

GENPTS_FLAGS = ("-fflags", "+genpts")
LOW_LATENCY_FFLAGS = "+genpts+nobuffer+flush_packets"
SESSION_METADATA_KEY = "session_tag"

# Fixed codec for audio re-encoding on the transcode path
REENCODE_AUDIO_CODEC = "ac3"


def session_metadata(session_tag: str) -> str:
    """Metadata value embedded in the transcode output to identify a session."""
    return f"{SESSION_METADATA_KEY}={session_tag}"


def build_passthrough_command(params: RequestParameters, legacy_bin: str) -> Command:
    """Legacy backend with presentation timestamp generation, args verbatim."""
    return (
        CommandBuilder()
        .program(legacy_bin)
        .option(*GENPTS_FLAGS)
        .verbatim(params.args)
        .build()
    )


def _demux_options(builder: CommandBuilder, config: WrapperConfig) -> None:
    builder.option("-probesize", config.demux.probesize)
    builder.option("-analyzeduration", config.demux.analyzeduration)
    builder.option("-max_delay", "0")


def _container_overrides(builder: CommandBuilder, params: RequestParameters) -> None:
    builder.option_if("-packetsize", params.packet_size)
    builder.option_if("-aspect", params.aspect)


def build_copy_command(params: RequestParameters, config: WrapperConfig) -> Command:
    """Stream copy through the legacy backend.

    The legacy backend still understands -activefile and -stdinctrl here, so
    the DVR's control stream reaches it directly.
    """
    builder = (
        CommandBuilder()
        .program(config.backend.legacy_bin)
        .option("-v", "3")
        .flag("-y")
        .option("-threads", "2")
        .flag("-sn")
        .option("-fflags", LOW_LATENCY_FFLAGS)
    )
    _demux_options(builder, config)
    builder.option_if("-ss", params.start_time)
    if params.activefile:
        builder.flag("-activefile")
    builder.flag("-stdinctrl")
    builder.option("-i", params.input_path)
    builder.option("-threads", "5")
    builder.option("-f", config.demux.output_format)
    builder.options([("-map", "0:v"), ("-map", "0:a?")])
    builder.options([("-c:v", "copy"), ("-c:a", "copy")])
    _container_overrides(builder, params)
    builder.options([("-muxpreload", "0"), ("-muxdelay", "0")])
    return builder.output("-").build()


def _audio_options(
    builder: CommandBuilder, params: RequestParameters, config: WrapperConfig
) -> None:
    if config.audio.reencode:
        builder.option("-c:a", REENCODE_AUDIO_CODEC)
        builder.option("-b:a", params.audio_bitrate)
        builder.option("-ar", params.audio_rate)
        builder.option("-ac", params.audio_channels)
    else:
        builder.option("-c:a", "copy")


def _map_options(builder: CommandBuilder, config: WrapperConfig) -> None:
    # Subtitles are never mapped; -sn drops them on input.
    if config.audio.track_mode is AudioTrackMode.ALL:
        builder.options([("-map", "0:v"), ("-map", "0:a?")])
        logger.info(
            "AUDIO_TRACK_MODE=all -> mapping 0:v and all 0:a?",
            extra={"tag": LogTag.INFO},
        )
    else:
        logger.info(
            "AUDIO_TRACK_MODE=default -> using ffmpeg default stream selection "
            "(no -map)",
            extra={"tag": LogTag.INFO},
        )


def build_transcode_command(
    params: RequestParameters,
    derived: DerivedParameters,
    config: WrapperConfig,
    session_tag: str,
) -> Command:
    """Transcode on the alternate backend.

    Args:
        params: Extracted request parameters.
        derived: Rates, GOP, filter and input path computed for this request.
        config: Wrapper configuration.
        session_tag: Unique session id, embedded as output metadata.

    Returns:
        The transcode Command writing to stdout.
    """
    encoder = config.encoder
    builder = (
        CommandBuilder()
        .program(*config.backend.transcode_bin)
        .raw(config.backend.hw_init_args)
        .flag("-y")
        .option("-fflags", LOW_LATENCY_FFLAGS)
        .flag("-sn")
    )
    _demux_options(builder, config)

    if params.activefile:
        builder.option("-follow", "1")
        logger.info(
            "LIVE activefile detected for input %s, adding -follow 1 (HW path)",
            derived.input_path,
            extra={"tag": LogTag.INFO},
        )

    if params.start_time:
        builder.option("-ss", params.start_time)
        logger.info(
            "applying seek -ss %s (HW path, live_activefile=%s)",
            params.start_time,
            str(params.activefile).lower(),
            extra={"tag": LogTag.INFO},
        )

    builder.option("-i", derived.input_path)
    builder.option_if("-vf", derived.video_filter)

    builder.option("-c:v", encoder.video_codec)
    if encoder.preset_opt and encoder.preset_value:
        builder.option(encoder.preset_opt, encoder.preset_value)

    builder.option("-b:v", derived.bitrate)
    builder.option("-maxrate", derived.maxrate)
    builder.option("-bufsize", derived.bufsize)
    builder.option("-r", params.framerate)
    builder.option("-g", derived.gop)
    builder.option("-bf", params.bframes)
    builder.raw(encoder.extra_args)

    _audio_options(builder, params, config)
    _map_options(builder, config)
    _container_overrides(builder, params)

    builder.option("-metadata", session_metadata(session_tag))
    builder.options([("-muxpreload", "0"), ("-muxdelay", "0")])
    builder.option("-f", config.demux.output_format)
    return builder.output("-").build()


def build_command(
    mode: Mode,
    params: RequestParameters,
    config: WrapperConfig,
    session_tag: str | None = None,
) -> Command:
    """Build the backend command for the chosen mode.

    Raises:
        ValueError: If mode is TRANSCODE and no session tag is given.
    """
    if mode is Mode.PASSTHROUGH:
        return build_passthrough_command(params, config.backend.legacy_bin)
    if mode is Mode.COPY_ONLY:
        return build_copy_command(params, config)
    if session_tag is None:
        raise ValueError("transcode commands require a session tag")
    derived = derive_parameters(params, config.rate_control, config.encoder)
    return build_transcode_command(params, derived, config, session_tag)
