"""Tests for session models and control-line classification."""

import os
import re
from unittest.mock import MagicMock

import pytest

from sagewrap.session.models import (
    ControlKind,
    Session,
    classify_control_line,
    new_session_tag,
)


class TestNewSessionTag:
    """Tests for new_session_tag."""

    def test_format(self) -> None:
        tag = new_session_tag()
        assert re.fullmatch(rf"sage{os.getpid()}_[0-9a-f]{{8}}", tag)

    def test_unique_within_process(self) -> None:
        assert len({new_session_tag() for _ in range(50)}) == 50


class TestSession:
    """Tests for the Session object."""

    def test_isolated_only_with_prefix(self) -> None:
        assert Session("t", "in.ts", exec_prefix=("docker", "exec", "c")).isolated
        assert not Session("t", "in.ts").isolated
        assert not Session("t", "in.ts", exec_prefix=()).isolated

    def test_attach_once(self) -> None:
        session = Session("t", "in.ts")
        process = MagicMock()
        session.attach(process)
        assert session.process is process
        with pytest.raises(RuntimeError, match="already has a process"):
            session.attach(MagicMock())


class TestClassifyControlLine:
    """Tests for classify_control_line."""

    @pytest.mark.parametrize(
        "line",
        ["STOP", "stop", "Stop\r\n", "STOP\n", "STOPNOW", "QUIT", "quit now", "q", "Q"],
    )
    def test_stop_vocabulary(self, line: str) -> None:
        assert classify_control_line(line).kind is ControlKind.STOP

    @pytest.mark.parametrize("line", ["", "PAUSE", "qq", " stop", "BUFFER 1024"])
    def test_everything_else_is_unhandled(self, line: str) -> None:
        message = classify_control_line(line)
        assert message.kind is ControlKind.UNHANDLED
        assert not message.is_stop

    def test_text_has_line_ending_removed(self) -> None:
        message = classify_control_line("STOP\r\n")
        assert message.text == "STOP"
        assert message.is_stop
