"""Derived transcode parameters.

Computes the values the alternate backend needs but the DVR never sends:
peak rate and buffer size scaled from the target bitrate, a GOP clamped for
low-latency playback, and the video filter chain. Every function here is
fail-soft: malformed upstream values pass through unchanged.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from sagewrap.logging import LogTag
from sagewrap.request.models import PLACEHOLDER_INPUT, RequestParameters

if TYPE_CHECKING:
    from sagewrap.config.models import EncoderConfig, RateControlConfig

logger = logging.getLogger(__name__)

_RATE_PATTERN = re.compile(r"([0-9]+)([kKmM]?)")
_DIGITS = re.compile(r"[0-9]+")

WIDTH_PLACEHOLDER = "%w%"
HEIGHT_PLACEHOLDER = "%h%"


def scale_rate(value: str, factor: float) -> str:
    """Multiply a rate such as ``4M`` by ``factor``, keeping its unit suffix.

    The numeric part is rounded half to even (``4.5`` -> ``4``), the same
    rounding ``printf "%.0f"`` applies.

    Args:
        value: Integer with an optional k/K/m/M suffix.
        factor: Multiplier.

    Returns:
        The scaled rate, or ``value`` unchanged when it does not match the
        integer-plus-suffix grammar.
    """
    match = _RATE_PATTERN.fullmatch(value)
    if match is None:
        return value
    number, suffix = match.groups()
    return f"{round(int(number) * factor)}{suffix}"


class ClampAction(Enum):
    """Outcome of a GOP clamp."""

    DISABLED = "disabled"  # No ceiling configured
    UNCHANGED = "unchanged"  # Within the ceiling
    CLAMPED = "clamped"  # Replaced by the ceiling
    SKIPPED = "skipped"  # A value was not numeric


@dataclass(frozen=True)
class ClampResult:
    """Clamped GOP value and what happened to it."""

    value: str
    action: ClampAction


def clamp_gop(gop: str, maximum: str) -> ClampResult:
    """Clamp a GOP size to a configured ceiling.

    Smaller GOPs start playback sooner at some cost in compression.

    Args:
        gop: Requested GOP size.
        maximum: Ceiling; empty disables clamping.

    Returns:
        ClampResult with the value to use. Non-numeric inputs are skipped,
        never rejected.
    """
    if not maximum:
        return ClampResult(gop, ClampAction.DISABLED)
    if not (_DIGITS.fullmatch(maximum) and _DIGITS.fullmatch(gop)):
        return ClampResult(gop, ClampAction.SKIPPED)
    if int(gop) > int(maximum):
        return ClampResult(maximum, ClampAction.CLAMPED)
    return ClampResult(gop, ClampAction.UNCHANGED)


def expand_filter_template(template: str, width: str, height: str) -> str:
    """Replace every %w% and %h% in a filter template."""
    return template.replace(WIDTH_PLACEHOLDER, width).replace(
        HEIGHT_PLACEHOLDER, height
    )


def select_video_filter(
    params: RequestParameters, encoder: EncoderConfig
) -> str | None:
    """Pick the video filter chain for a request.

    An explicit -s uses the scale+deinterlace template; otherwise the
    deinterlace-only filter. An empty configured value means no filter.

    Returns:
        The filter string for -vf, or None.
    """
    if params.size_set:
        if encoder.deint_scale_filter_template:
            return expand_filter_template(
                encoder.deint_scale_filter_template, params.width, params.height
            )
        return None
    return encoder.deint_filter or None


@dataclass(frozen=True)
class DerivedParameters:
    """Values computed for the transcode command."""

    input_path: str
    bitrate: str
    maxrate: str
    bufsize: str
    gop: str
    video_filter: str | None
    gop_clamp: ClampAction


def derive_parameters(
    params: RequestParameters,
    rate_control: RateControlConfig,
    encoder: EncoderConfig,
) -> DerivedParameters:
    """Compute every derived value for a transcode request.

    Args:
        params: Extracted request parameters (not modified).
        rate_control: Multipliers and GOP ceiling.
        encoder: Filter configuration.

    Returns:
        DerivedParameters for the command synthesizer.
    """
    clamp = clamp_gop(params.gop, rate_control.gop_clamp_max)
    if clamp.action is ClampAction.CLAMPED:
        logger.info(
            "gop %s too large for low latency playback, clamping to %s",
            params.gop,
            clamp.value,
            extra={"tag": LogTag.INFO},
        )
    elif clamp.action is ClampAction.SKIPPED:
        logger.info(
            "GOP_CLAMP_MAX='%s' or gop='%s' not numeric, skipping clamp",
            rate_control.gop_clamp_max,
            params.gop,
            extra={"tag": LogTag.INFO},
        )

    input_path = params.input_path
    if not input_path:
        logger.warning(
            "No -i in request, using placeholder input %s",
            PLACEHOLDER_INPUT,
            extra={"tag": LogTag.INFO},
        )
        input_path = PLACEHOLDER_INPUT

    return DerivedParameters(
        input_path=input_path,
        bitrate=params.bitrate,
        maxrate=scale_rate(params.bitrate, rate_control.maxrate_multiplier),
        bufsize=scale_rate(params.bitrate, rate_control.bufsize_multiplier),
        gop=clamp.value,
        video_filter=select_video_filter(params, encoder),
        gop_clamp=clamp.action,
    )
