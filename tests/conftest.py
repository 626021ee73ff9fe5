"""Shared test fixtures for sagewrap."""

import logging
from collections.abc import Iterator

import pytest

from sagewrap.config import WrapperConfig, clear_config_cache
from sagewrap.logging import LogTagFilter, set_session_context

# Argument vector the DVR sends for a live hardware transcode
LIVE_TRANSCODE_ARGS = (
    "-activefile",
    "-stdinctrl",
    "-i",
    "/var/media/tv/show-1234.ts",
    "-vcodec",
    "mpeg4",
    "-b",
    "4M",
    "-r",
    "30000/1001",
    "-s",
    "1280x720",
    "-g",
    "300",
    "-bf",
    "0",
    "-f",
    "mpegts",
    "-",
)


def _installed_by_wrapper(handler: logging.Handler) -> bool:
    if type(handler) is logging.NullHandler:
        return True
    return any(isinstance(f, LogTagFilter) for f in handler.filters)


@pytest.fixture(autouse=True)
def isolate_global_state() -> Iterator[None]:
    """Drop wrapper log handlers and reset module state after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if _installed_by_wrapper(handler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    set_session_context(None)
    clear_config_cache()


@pytest.fixture
def wrapper_config() -> WrapperConfig:
    """Return a configuration with every default."""
    return WrapperConfig()


@pytest.fixture
def live_args() -> tuple[str, ...]:
    """Return the DVR argument vector for a live transcode."""
    return LIVE_TRANSCODE_ARGS
