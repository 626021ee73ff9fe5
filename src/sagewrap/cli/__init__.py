"""CLI module for sagewrap.

The DVR invokes ``sagewrap`` in place of its bundled ffmpeg, passing an
ffmpeg-style argument vector. Every single-dash token is forwarded
verbatim; only the wrapper's own long options are interpreted.
"""

import logging
import os
import sys
from pathlib import Path
from typing import BinaryIO, NoReturn

import click

from sagewrap.cli.exit_codes import ExitCode, exit_code_for_spawn_error
from sagewrap.config import (
    ConfigError,
    WrapperConfig,
    build_logging_config,
    get_config,
    validate_config,
)
from sagewrap.executor import Command, build_command, build_transcode_command
from sagewrap.logging import LogTag, configure_logging, session_context
from sagewrap.request import (
    Mode,
    RequestParameters,
    classify_mode,
    derive_parameters,
    extract_parameters,
)
from sagewrap.session import (
    BackendSpawnError,
    ProcessSupervisor,
    Session,
    TerminationCoordinator,
    new_session_tag,
)

logger = logging.getLogger(__name__)

# Name the DVR believes it is running
UPSTREAM_NAME = "/opt/sagetv/server/ffmpeg"


def _flush_log_handlers() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


def _control_stream() -> BinaryIO:
    # Unbuffered: a reader still blocked at exit must not hold a buffer lock
    stdin = sys.stdin.buffer
    return getattr(stdin, "raw", stdin)


def _exec_legacy(command: Command) -> NoReturn:
    """Replace this process with the legacy backend.

    Returns only by exiting, when the exec itself fails.
    """
    _flush_log_handlers()
    sys.stderr.flush()
    try:
        os.execv(command.program, command.argv)  # nosec B606
    except OSError as e:
        logger.error("Failed to exec %s: %s", command.program, e)
        sys.exit(exit_code_for_spawn_error(e))


def _run_transcode(
    params: RequestParameters,
    config: WrapperConfig,
    dry_run: bool,
) -> int:
    """Synthesize and supervise a transcode session.

    Returns:
        Exit status for the wrapper.
    """
    session_tag = new_session_tag()
    derived = derive_parameters(params, config.rate_control, config.encoder)
    command = build_transcode_command(params, derived, config, session_tag)

    logger.info(
        "(%s) %s (live_activefile=%s, session_tag=%s)",
        config.encoder.video_codec,
        command,
        str(params.activefile).lower(),
        session_tag,
        extra={"tag": LogTag.TRANSCODE},
    )
    if dry_run:
        click.echo(command.shell_quoted(), err=True)
        return ExitCode.SUCCESS

    session = Session(
        tag=session_tag,
        input_path=derived.input_path,
        exec_prefix=config.backend.isolation_prefix,
    )
    log_config = config.logging
    supervisor = ProcessSupervisor(
        command,
        session,
        TerminationCoordinator(),
        control_stream=_control_stream(),
        relay_stderr=log_config.enabled,
        hex_dump=log_config.enabled and log_config.control_hex_dump,
    )
    with session_context(session_tag):
        try:
            return supervisor.run()
        except BackendSpawnError as e:
            logger.error("%s", e)
            return exit_code_for_spawn_error(e.error)


# Stand-in for a bare "--" while click parses; argv entries cannot hold NUL
_DOUBLE_DASH = "\0--"


class VerbatimCommand(click.Command):
    """Command that treats a bare ``--`` as an upstream token.

    Click normally consumes ``--`` as its end-of-options marker, which would
    drop it from the vector handed to the legacy backend.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        args = [_DOUBLE_DASH if arg == "--" else arg for arg in args]
        return super().parse_args(ctx, args)


@click.command(
    cls=VerbatimCommand,
    context_settings={
        "ignore_unknown_options": True,
        "allow_extra_args": True,
        "help_option_names": ["--help"],
    }
)
@click.version_option(package_name="sagewrap")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Config file (default: $SAGEWRAP_CONFIG_PATH or "
    "/opt/sagetv/server/sagewrap.toml).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Print the backend command to stderr instead of running it.",
)
@click.argument("args", nargs=-1, type=click.UNPROCESSED)
def main(
    config_path: Path | None,
    log_level: str | None,
    dry_run: bool,
    args: tuple[str, ...],
) -> None:
    """Route a SageTV ffmpeg request to the legacy or alternate backend."""
    args = tuple("--" if arg == _DOUBLE_DASH else arg for arg in args)
    try:
        config = get_config(config_path)
        config.logging = build_logging_config(
            config.logging, level=log_level.lower() if log_level else None
        )
    except (ConfigError, ValueError) as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(ExitCode.CONFIG_ERROR)

    configure_logging(config.logging)
    for warning in validate_config(config):
        logger.warning("config: %s", warning, extra={"tag": LogTag.INFO})

    logger.info(
        "%s %s", UPSTREAM_NAME, " ".join(args), extra={"tag": LogTag.ORIGINAL}
    )

    params = extract_parameters(args)
    triggers = config.triggers
    mode = classify_mode(params, triggers.vcodec, triggers.copy_only_format)
    logger.debug(
        "mode=%s vcodec=%s format=%s", mode.value, params.vcodec, params.format
    )

    if mode is Mode.TRANSCODE:
        sys.exit(_run_transcode(params, config, dry_run))

    command = build_command(mode, params, config)
    if mode is Mode.COPY_ONLY:
        logger.info("%s", command, extra={"tag": LogTag.COPY})

    if dry_run:
        click.echo(command.shell_quoted(), err=True)
        sys.exit(ExitCode.SUCCESS)

    _exec_legacy(command)
