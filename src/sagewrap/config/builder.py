"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building WrapperConfig by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from sagewrap.config.env import EnvReader, parse_bool
from sagewrap.config.models import (
    AudioConfig,
    AudioTrackMode,
    BackendConfig,
    DemuxConfig,
    EncoderConfig,
    LoggingConfig,
    RateControlConfig,
    TriggerConfig,
    WrapperConfig,
)

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the layered configuration cannot be turned into a model."""


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources. Empty strings and empty
    lists are real values (they disable the corresponding feature).
    """

    # Backends
    legacy_bin: str | None = None
    transcode_bin: list[str] | None = None
    exec_prefix: list[str] | None = None
    hw_init_args: list[str] | None = None

    # Encoder
    deint_filter: str | None = None
    deint_scale_filter_template: str | None = None
    video_codec: str | None = None
    video_preset_opt: str | None = None
    video_preset_value: str | None = None
    video_extra_args: list[str] | None = None

    # Rate control
    maxrate_multiplier: float | None = None
    bufsize_multiplier: float | None = None
    gop_clamp_max: str | None = None

    # Audio
    audio_reencode: bool | None = None
    audio_track_mode: str | None = None

    # Demux / output
    demux_probesize: str | None = None
    demux_analyzeduration: str | None = None
    output_format: str | None = None

    # Triggers
    trigger_vcodec: str | None = None
    trigger_copy_only_format: str | None = None

    # Logging
    logging_enabled: bool | None = None
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None
    logging_control_hex_dump: bool | None = None


class ConfigBuilder:
    """Builds WrapperConfig by layering ConfigSources with precedence.

    The builder accumulates configuration values from multiple sources.
    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        config = builder.build()
    """

    def __init__(self) -> None:
        """Initialize the builder with no values set."""
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        """Apply configuration source, overriding existing values.

        Args:
            source: Configuration source to apply.
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        """Get a value with fallback to default."""
        return self._values.get(key, default)

    def build(self) -> WrapperConfig:
        """Build the final WrapperConfig with defaults for unset values.

        Returns:
            Complete WrapperConfig with all values resolved.

        Raises:
            ConfigError: If a value fails model validation.
        """
        try:
            return self._build()
        except ValueError as e:
            raise ConfigError(str(e)) from e

    def _build(self) -> WrapperConfig:
        backend_defaults = BackendConfig()
        exec_prefix = self._get("exec_prefix", None)
        backend = BackendConfig(
            legacy_bin=self._get("legacy_bin", backend_defaults.legacy_bin),
            transcode_bin=tuple(
                self._get("transcode_bin", backend_defaults.transcode_bin)
            ),
            exec_prefix=tuple(exec_prefix) if exec_prefix is not None else None,
            hw_init_args=tuple(
                self._get("hw_init_args", backend_defaults.hw_init_args)
            ),
        )

        encoder_defaults = EncoderConfig()
        encoder = EncoderConfig(
            deint_filter=self._get("deint_filter", encoder_defaults.deint_filter),
            deint_scale_filter_template=self._get(
                "deint_scale_filter_template",
                encoder_defaults.deint_scale_filter_template,
            ),
            video_codec=self._get("video_codec", encoder_defaults.video_codec),
            preset_opt=self._get("video_preset_opt", encoder_defaults.preset_opt),
            preset_value=self._get(
                "video_preset_value", encoder_defaults.preset_value
            ),
            extra_args=tuple(
                self._get("video_extra_args", encoder_defaults.extra_args)
            ),
        )

        rate_defaults = RateControlConfig()
        rate_control = RateControlConfig(
            maxrate_multiplier=self._get(
                "maxrate_multiplier", rate_defaults.maxrate_multiplier
            ),
            bufsize_multiplier=self._get(
                "bufsize_multiplier", rate_defaults.bufsize_multiplier
            ),
            gop_clamp_max=self._get("gop_clamp_max", rate_defaults.gop_clamp_max),
        )

        audio_defaults = AudioConfig()
        track_mode = audio_defaults.track_mode
        raw_mode = self._get("audio_track_mode", None)
        if raw_mode is not None:
            parsed = AudioTrackMode.parse(raw_mode)
            if parsed is None:
                logger.warning(
                    "Unknown audio track mode %r, using default stream selection",
                    raw_mode,
                )
                track_mode = AudioTrackMode.DEFAULT
            else:
                track_mode = parsed
        audio = AudioConfig(
            reencode=self._get("audio_reencode", audio_defaults.reencode),
            track_mode=track_mode,
        )

        demux_defaults = DemuxConfig()
        demux = DemuxConfig(
            probesize=self._get("demux_probesize", demux_defaults.probesize),
            analyzeduration=self._get(
                "demux_analyzeduration", demux_defaults.analyzeduration
            ),
            output_format=self._get("output_format", demux_defaults.output_format),
        )

        trigger_defaults = TriggerConfig()
        triggers = TriggerConfig(
            vcodec=self._get("trigger_vcodec", trigger_defaults.vcodec),
            copy_only_format=self._get(
                "trigger_copy_only_format", trigger_defaults.copy_only_format
            ),
        )

        logging_defaults = LoggingConfig()
        logging_config = LoggingConfig(
            enabled=self._get("logging_enabled", logging_defaults.enabled),
            level=self._get("logging_level", logging_defaults.level),
            file=self._get("logging_file", logging_defaults.file),
            format=self._get("logging_format", logging_defaults.format),
            include_stderr=self._get(
                "logging_include_stderr", logging_defaults.include_stderr
            ),
            max_bytes=self._get("logging_max_bytes", logging_defaults.max_bytes),
            backup_count=self._get(
                "logging_backup_count", logging_defaults.backup_count
            ),
            control_hex_dump=self._get(
                "logging_control_hex_dump", logging_defaults.control_hex_dump
            ),
        )

        return WrapperConfig(
            backend=backend,
            encoder=encoder,
            rate_control=rate_control,
            audio=audio,
            demux=demux,
            triggers=triggers,
            logging=logging_config,
        )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from environment variables.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from environment variables.
    """
    reencode = reader.get_str("SAGEWRAP_AUDIO_REENCODE") or None
    return ConfigSource(
        # Backends
        legacy_bin=reader.get_str("SAGEWRAP_LEGACY_BIN"),
        transcode_bin=reader.get_args("SAGEWRAP_TRANSCODE_BIN"),
        exec_prefix=reader.get_args("SAGEWRAP_EXEC_PREFIX"),
        hw_init_args=reader.get_args("SAGEWRAP_HW_INIT_ARGS"),
        # Encoder
        deint_filter=reader.get_str("SAGEWRAP_DEINT_FILTER"),
        deint_scale_filter_template=reader.get_str(
            "SAGEWRAP_DEINT_SCALE_FILTER_TEMPLATE"
        ),
        video_codec=reader.get_str("SAGEWRAP_VIDEO_CODEC"),
        video_preset_opt=reader.get_str("SAGEWRAP_VIDEO_PRESET_OPT"),
        video_preset_value=reader.get_str("SAGEWRAP_VIDEO_PRESET_VALUE"),
        video_extra_args=reader.get_args("SAGEWRAP_VIDEO_EXTRA_ARGS"),
        # Rate control
        maxrate_multiplier=reader.get_float("SAGEWRAP_V_MAXRATE_MULTI"),
        bufsize_multiplier=reader.get_float("SAGEWRAP_V_BUFSIZE_MULTI"),
        gop_clamp_max=reader.get_str("SAGEWRAP_GOP_CLAMP_MAX"),
        # Audio ("yes" is the only value that enables re-encoding)
        audio_reencode=_is_yes(reencode) if reencode is not None else None,
        audio_track_mode=reader.get_str("SAGEWRAP_AUDIO_TRACK_MODE"),
        # Demux / output
        demux_probesize=reader.get_str("SAGEWRAP_DEMUX_PROBESIZE"),
        demux_analyzeduration=reader.get_str("SAGEWRAP_DEMUX_ANALYZEDURATION"),
        output_format=reader.get_str("SAGEWRAP_OUTPUT_FORMAT"),
        # Triggers
        trigger_vcodec=reader.get_str("SAGEWRAP_HW_TRIGGER_VCODEC"),
        trigger_copy_only_format=reader.get_str("SAGEWRAP_COPY_ONLY_F_TRIGGER"),
        # Logging
        logging_enabled=reader.get_bool("SAGEWRAP_ENABLE_LOGGING"),
        logging_level=reader.get_str("SAGEWRAP_LOG_LEVEL"),
        logging_file=reader.get_path("SAGEWRAP_LOGFILE"),
        logging_format=reader.get_str("SAGEWRAP_LOG_FORMAT"),
        logging_include_stderr=reader.get_bool("SAGEWRAP_LOG_INCLUDE_STDERR"),
        logging_max_bytes=None,
        logging_backup_count=None,
        logging_control_hex_dump=reader.get_bool("SAGEWRAP_DEBUG_STDINCTRL_HEX"),
    )


def _as_args(value: Any) -> list[str] | None:
    """Normalize a TOML array (or shell-style string) into argument tokens."""
    if value is None:
        return None
    if isinstance(value, str):
        return shlex.split(value)
    return [str(v) for v in value]


def _is_yes(value: str) -> bool:
    return value == "yes"


def _as_bool(
    section: dict[str, Any],
    section_name: str,
    key: str,
    parse: Callable[[str], bool] = parse_bool,
) -> bool | None:
    """Read a TOML boolean, accepting the string spellings the environment uses.

    Raises:
        ConfigError: If the value is neither a boolean nor a string.
    """
    value = section.get(key)
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return parse(value) if value else None
    raise ConfigError(
        f"{section_name}.{key} must be a boolean, got {type(value).__name__}"
    )


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from parsed TOML config file.

    Args:
        file_config: Parsed configuration dictionary from TOML file.

    Returns:
        ConfigSource with values from the config file.
    """
    backend = file_config.get("backend", {})
    encoder = file_config.get("encoder", {})
    rate_control = file_config.get("rate_control", {})
    audio = file_config.get("audio", {})
    demux = file_config.get("demux", {})
    triggers = file_config.get("triggers", {})
    logging_conf = file_config.get("logging", {})

    log_file_str = logging_conf.get("file")
    log_file = Path(log_file_str).expanduser() if log_file_str else None

    maxrate = rate_control.get("maxrate_multiplier")
    bufsize = rate_control.get("bufsize_multiplier")
    gop_clamp = rate_control.get("gop_clamp_max")

    return ConfigSource(
        # Backends
        legacy_bin=backend.get("legacy_bin"),
        transcode_bin=_as_args(backend.get("transcode_bin")),
        exec_prefix=_as_args(backend.get("exec_prefix")),
        hw_init_args=_as_args(backend.get("hw_init_args")),
        # Encoder
        deint_filter=encoder.get("deint_filter"),
        deint_scale_filter_template=encoder.get("deint_scale_filter_template"),
        video_codec=encoder.get("video_codec"),
        video_preset_opt=encoder.get("preset_opt"),
        video_preset_value=encoder.get("preset_value"),
        video_extra_args=_as_args(encoder.get("extra_args")),
        # Rate control
        maxrate_multiplier=float(maxrate) if maxrate is not None else None,
        bufsize_multiplier=float(bufsize) if bufsize is not None else None,
        gop_clamp_max=str(gop_clamp) if gop_clamp is not None else None,
        # Audio
        audio_reencode=_as_bool(audio, "audio", "reencode", _is_yes),
        audio_track_mode=audio.get("track_mode"),
        # Demux / output
        demux_probesize=_as_str(demux.get("probesize")),
        demux_analyzeduration=_as_str(demux.get("analyzeduration")),
        output_format=demux.get("output_format"),
        # Triggers
        trigger_vcodec=triggers.get("vcodec"),
        trigger_copy_only_format=triggers.get("copy_only_format"),
        # Logging
        logging_enabled=_as_bool(logging_conf, "logging", "enabled"),
        logging_level=logging_conf.get("level"),
        logging_file=log_file,
        logging_format=logging_conf.get("format"),
        logging_include_stderr=_as_bool(logging_conf, "logging", "include_stderr"),
        logging_max_bytes=logging_conf.get("max_bytes"),
        logging_backup_count=logging_conf.get("backup_count"),
        logging_control_hex_dump=_as_bool(
            logging_conf, "logging", "control_hex_dump"
        ),
    )


def _as_str(value: Any) -> str | None:
    """Stringify numeric TOML values that are passed through as arguments."""
    return str(value) if value is not None else None
