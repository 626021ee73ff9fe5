"""Environment variable reader with dependency injection support.

This module provides the EnvReader class for reading and parsing environment
variables with type conversion and validation. It supports dependency injection
for testing by accepting an optional env mapping.
"""

from __future__ import annotations

import logging
import os
import shlex
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

# Case-insensitive spellings of true; any other non-empty value is false
TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


def parse_bool(value: str) -> bool:
    """Interpret a configuration string as a boolean."""
    return value.strip().lower() in TRUE_VALUES


class EnvReader:
    """Environment variable reader with type conversion and validation.

    Provides methods to read environment variables with automatic type
    conversion (str, float, bool, Path, argument lists) and sensible
    defaults.

    Example:
        # Production usage (reads from os.environ)
        reader = EnvReader()
        codec = reader.get_str("SAGEWRAP_VIDEO_CODEC", "hevc_qsv")

        # Testing usage (inject custom env)
        reader = EnvReader(env={"SAGEWRAP_V_MAXRATE_MULTI": "2.0"})
        reader.get_float("SAGEWRAP_V_MAXRATE_MULTI", 1.5)  # Returns 2.0
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the environment reader.

        Args:
            env: Optional mapping to use instead of os.environ.
                 If None, reads from os.environ. Useful for testing.
        """
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string from environment variable.

        An empty value is returned as-is: several wrapper settings use the
        empty string to mean "disabled".

        Args:
            var: Environment variable name.
            default: Default value if not set. Defaults to None.

        Returns:
            The environment variable value, or default if not set.
        """
        value = self._env.get(var)
        if value is None:
            return default
        return value

    def get_float(self, var: str, default: float | None = None) -> float | None:
        """Get a float from environment variable.

        Args:
            var: Environment variable name.
            default: Default value if not set or invalid.

        Returns:
            Parsed float value, or default if not set or invalid.
            Logs a warning if the value is set but cannot be parsed.
        """
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Get a boolean from environment variable.

        Recognizes the following true values (case-insensitive):
        - "true", "1", "yes", "on"

        All other non-empty values are treated as false.

        Args:
            var: Environment variable name.
            default: Default value if not set.

        Returns:
            Boolean value, or default if not set or empty.
        """
        value = self._env.get(var)
        if not value:
            return default
        return parse_bool(value)

    def get_path(self, var: str, default: Path | None = None) -> Path | None:
        """Get a path from environment variable.

        Args:
            var: Environment variable name.
            default: Default value if not set.

        Returns:
            Path object (with ~ expanded), or default if not set.
        """
        value = self._env.get(var)
        if not value:
            return default

        return Path(value).expanduser()

    def get_args(self, var: str, default: list[str] | None = None) -> list[str] | None:
        """Get an argument list from environment variable.

        The value is split with shell quoting rules, so
        ``-init_hw_device "qsv=hw:/dev/dri/renderD128"`` yields two tokens.
        An empty value yields an empty list.

        Args:
            var: Environment variable name.
            default: Default value if not set or unparseable.

        Returns:
            List of argument tokens, or default if not set or invalid.
        """
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return shlex.split(value)
        except ValueError as e:
            logger.warning("Invalid argument list for %s: %s (%s)", var, value, e)
            return default
