"""Execution mode selection."""

from sagewrap.request.models import Mode, RequestParameters


def classify_mode(
    params: RequestParameters,
    vcodec_trigger: str,
    copy_only_trigger: str,
) -> Mode:
    """Choose the execution mode for a request.

    Rules, in order:
    1. An empty vcodec trigger, or a -vcodec value that differs from it,
       passes the request through to the legacy backend.
    2. A non-empty copy-only trigger equal to the -f value selects stream copy.
    3. Anything else is transcoded on the alternate backend.

    Both comparisons are exact (case-sensitive) string matches.

    Args:
        params: Extracted request parameters.
        vcodec_trigger: -vcodec value that enables the alternate backend.
        copy_only_trigger: -f value that selects stream copy.

    Returns:
        The selected Mode.
    """
    if not vcodec_trigger or params.vcodec != vcodec_trigger:
        return Mode.PASSTHROUGH
    if copy_only_trigger and params.format == copy_only_trigger:
        return Mode.COPY_ONLY
    return Mode.TRANSCODE
