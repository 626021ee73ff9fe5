"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. Environment variables (SAGEWRAP_*)
2. Config file (/opt/sagetv/server/sagewrap.toml)
3. Default values

The DVR starts the wrapper with a fixed argument vector, so there is no
command-line layer: every knob is either in the environment or the file.

Environment variables:
- SAGEWRAP_CONFIG_PATH: Path to config file (overrides default location)
- SAGEWRAP_LEGACY_BIN: Legacy ffmpeg.run executable
- SAGEWRAP_TRANSCODE_BIN: Transcode command prefix (shell-split)
- SAGEWRAP_EXEC_PREFIX: Command prefix used to reach the transcode container
- SAGEWRAP_HW_TRIGGER_VCODEC / SAGEWRAP_COPY_ONLY_F_TRIGGER: Mode triggers
- SAGEWRAP_ENABLE_LOGGING / SAGEWRAP_LOGFILE: Diagnostic log switch and path
"""

from __future__ import annotations

import logging
import os
import re
import threading
import tomllib
from pathlib import Path

from sagewrap.config.builder import (
    ConfigBuilder,
    source_from_env,
    source_from_file,
)
from sagewrap.config.env import EnvReader
from sagewrap.config.models import WrapperConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("/opt/sagetv/server/sagewrap.toml")

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by SAGEWRAP_CONFIG_PATH environment variable.

    Returns:
        Path to config file.
    """
    env_path = os.environ.get("SAGEWRAP_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_FILE


def _parse_file(path: Path) -> dict:
    """Read and parse a TOML file, returning {} when missing or invalid."""
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring config file %s: %s", path, e)
        return {}


def load_config_file(path: Path | None = None) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. A missing or unparseable
    file yields an empty dict so the wrapper always falls back to defaults
    rather than breaking the recording pipeline.

    Args:
        path: Path to config file. If None, uses default location.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except OSError:
        current_mtime = 0.0

    with _config_cache_lock:
        if path in _config_cache:
            cached_config, cached_mtime = _config_cache[path]
            if current_mtime == cached_mtime:
                return cached_config

        result = _parse_file(path)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache. Primarily useful for testing."""
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    env_reader: EnvReader | None = None,
) -> WrapperConfig:
    """Get wrapper configuration with full precedence handling.

    Args:
        config_path: Path to config file (overrides SAGEWRAP_CONFIG_PATH).
        env_reader: Optional EnvReader for testing (uses os.environ if None).

    Returns:
        WrapperConfig with merged configuration.

    Raises:
        ConfigError: If the merged values fail validation.
    """
    reader = env_reader or EnvReader()

    file_config = load_config_file(config_path)

    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(reader))
    return builder.build()


def validate_config(config: WrapperConfig) -> list[str]:
    """Validate cross-field configuration constraints.

    None of these problems stop the wrapper; the caller logs them so a
    misconfiguration is visible in the command log.

    Args:
        config: The configuration to validate.

    Returns:
        List of warning strings. Empty list means configuration looks sane.
    """
    warnings: list[str] = []

    if not config.triggers.vcodec and config.triggers.copy_only_format:
        warnings.append(
            "copy-only trigger is set but the vcodec trigger is empty; "
            "every request will pass through unchanged"
        )

    template = config.encoder.deint_scale_filter_template
    if template and ("%w%" not in template or "%h%" not in template):
        warnings.append(
            f"scale filter template {template!r} lacks %w% or %h% placeholders"
        )

    clamp = config.rate_control.gop_clamp_max
    if clamp and not re.fullmatch(r"[0-9]+", clamp):
        warnings.append(f"gop clamp {clamp!r} is not numeric; clamping disabled")

    for name in ("maxrate_multiplier", "bufsize_multiplier"):
        value = getattr(config.rate_control, name)
        if value <= 0:
            warnings.append(f"{name} must be positive, got {value}")

    if bool(config.encoder.preset_opt) != bool(config.encoder.preset_value):
        warnings.append("video preset option and value must both be set; omitting")

    return warnings
