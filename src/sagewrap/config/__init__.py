"""Configuration management for sagewrap.

This module provides configuration loading with precedence handling:
1. Environment variables (SAGEWRAP_*)
2. Config file (/opt/sagetv/server/sagewrap.toml)
3. Default values (lowest priority)
"""

from sagewrap.config.builder import (
    ConfigBuilder,
    ConfigError,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from sagewrap.config.env import EnvReader
from sagewrap.config.loader import (
    clear_config_cache,
    get_config,
    get_default_config_path,
    load_config_file,
    validate_config,
)
from sagewrap.config.logging_factory import build_logging_config
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

__all__ = [
    # Models
    "AudioConfig",
    "AudioTrackMode",
    "BackendConfig",
    "DemuxConfig",
    "EncoderConfig",
    "LoggingConfig",
    "RateControlConfig",
    "TriggerConfig",
    "WrapperConfig",
    # Loader
    "clear_config_cache",
    "get_config",
    "get_default_config_path",
    "load_config_file",
    "validate_config",
    # Builder
    "ConfigBuilder",
    "ConfigError",
    "ConfigSource",
    "EnvReader",
    "build_logging_config",
    "source_from_env",
    "source_from_file",
]
