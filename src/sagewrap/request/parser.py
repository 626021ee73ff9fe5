"""Parameter extraction from the DVR's ffmpeg argument vector.

The flag vocabulary is fixed by the DVR. Each recognized flag takes the next
token as its value, except ``-activefile`` which is a presence flag. A flag
at the very end of the vector (no value) leaves its field at the default.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sagewrap.request.models import RequestParameters

logger = logging.getLogger(__name__)

# Flag -> RequestParameters field for flags that take a value
VALUE_FLAGS: dict[str, str] = {
    "-vcodec": "vcodec",
    "-i": "input_path",
    "-ss": "start_time",
    "-b": "bitrate",
    "-r": "framerate",
    "-s": "size",
    "-g": "gop",
    "-bf": "bframes",
    "-ab": "audio_bitrate",
    "-ar": "audio_rate",
    "-ac": "audio_channels",
    "-f": "format",
    "-packetsize": "packet_size",
    "-aspect": "aspect",
}

PRESENCE_FLAGS: dict[str, str] = {
    "-activefile": "activefile",
}


def extract_parameters(args: Sequence[str]) -> RequestParameters:
    """Scan the argument vector once and build a RequestParameters.

    Tokens are examined left to right; a value consumed by a flag is still
    examined as a potential flag itself. Later occurrences of a flag win.

    Args:
        args: Argument vector as received from the DVR (without argv[0]).

    Returns:
        Immutable request record. Unrecognized flags are ignored here and
        survive only in ``args``.
    """
    values: dict[str, Any] = {}
    count = len(args)

    for i, token in enumerate(args):
        if token in PRESENCE_FLAGS:
            values[PRESENCE_FLAGS[token]] = True
            continue

        field_name = VALUE_FLAGS.get(token)
        if field_name is None:
            continue
        if i + 1 >= count:
            logger.debug("Flag %s has no value, keeping default", token)
            continue

        values[field_name] = args[i + 1]
        if field_name == "size":
            values["size_set"] = True

    return RequestParameters(args=tuple(args), **values)
