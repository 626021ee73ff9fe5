"""Request extraction, classification and derived parameters."""

from sagewrap.request.classify import classify_mode
from sagewrap.request.derive import (
    ClampAction,
    ClampResult,
    DerivedParameters,
    clamp_gop,
    derive_parameters,
    expand_filter_template,
    scale_rate,
    select_video_filter,
)
from sagewrap.request.models import PLACEHOLDER_INPUT, Mode, RequestParameters
from sagewrap.request.parser import extract_parameters

__all__ = [
    "PLACEHOLDER_INPUT",
    "ClampAction",
    "ClampResult",
    "DerivedParameters",
    "Mode",
    "RequestParameters",
    "clamp_gop",
    "classify_mode",
    "derive_parameters",
    "expand_filter_template",
    "extract_parameters",
    "scale_rate",
    "select_video_filter",
]
