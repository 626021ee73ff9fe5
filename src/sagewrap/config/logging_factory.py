"""Logging configuration factory.

This module provides a factory function for building LoggingConfig
instances with command-line overrides applied to a base configuration.
"""

from __future__ import annotations

from dataclasses import replace

from sagewrap.config.models import LoggingConfig


def build_logging_config(
    base: LoggingConfig,
    *,
    level: str | None = None,
) -> LoggingConfig:
    """Build LoggingConfig by merging base config with overrides.

    Args:
        base: Base logging configuration (from environment and config file).
        level: Override log level (debug, info, warning, error), as given
            by ``--log-level``. If None, uses base.level.

    Returns:
        New LoggingConfig with overrides applied. Validation runs via
        LoggingConfig.__post_init__, so invalid values will raise ValueError.
    """
    return replace(base, level=level if level is not None else base.level)
