"""Tests for ProcessSupervisor using real short-lived processes."""

import io
import logging
import signal
from unittest.mock import MagicMock

import pytest

from sagewrap.executor.types import CommandBuilder
from sagewrap.session.models import Session
from sagewrap.session.supervisor import BackendSpawnError, ProcessSupervisor
from sagewrap.session.termination import TerminationCoordinator

pytestmark = pytest.mark.integration


def _command(*argv: str):
    return CommandBuilder().program(*argv).build()


def _supervisor(*argv: str, prefix=None, **kwargs):
    session = Session("sage7_12345678", "/media/in.ts", exec_prefix=prefix)
    coordinator = MagicMock(spec=TerminationCoordinator)
    kwargs.setdefault("stderr_sink", io.BytesIO())
    supervisor = ProcessSupervisor(_command(*argv), session, coordinator, **kwargs)
    return supervisor, session, coordinator


class TestExitStatus:
    """The supervisor reports the backend's exit status."""

    def test_normal_exit(self) -> None:
        supervisor, session, _ = _supervisor("sh", "-c", "exit 3")
        assert supervisor.run() == 3
        assert session.process is not None

    def test_killed_by_signal(self) -> None:
        supervisor, _, _ = _supervisor("sh", "-c", "kill -TERM $$")
        assert supervisor.run() == 128 + signal.SIGTERM

    def test_spawn_failure(self) -> None:
        supervisor, session, coordinator = _supervisor("/nonexistent/ffmpeg")
        with pytest.raises(BackendSpawnError) as exc_info:
            supervisor.run()
        assert isinstance(exc_info.value.error, FileNotFoundError)
        assert session.process is None
        coordinator.terminate.assert_not_called()

    def test_terminates_again_after_exit(self) -> None:
        supervisor, session, coordinator = _supervisor("true")
        supervisor.run()
        coordinator.terminate.assert_called_once_with(session)

    def test_exit_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        supervisor, _, _ = _supervisor("sh", "-c", "exit 2")
        with caplog.at_level(logging.INFO):
            supervisor.run()
        assert "ffmpeg (session_tag=sage7_12345678) exited with status 2" in (
            caplog.text
        )


class TestStderrRelay:
    """Backend stderr is logged and passed on."""

    def test_relayed_to_sink_and_log(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = io.BytesIO()
        supervisor, _, _ = _supervisor(
            "sh", "-c", "echo 'frame=1' >&2; echo 'frame=2' >&2", stderr_sink=sink
        )
        with caplog.at_level(logging.INFO):
            supervisor.run()

        assert sink.getvalue() == b"frame=1\nframe=2\n"
        relayed = [
            r.getMessage() for r in caplog.records if r.name.endswith("supervisor")
        ]
        assert relayed[:2] == ["frame=1", "frame=2"]

    def test_inherited_when_disabled(self) -> None:
        sink = io.BytesIO()
        supervisor, session, _ = _supervisor(
            "sh", "-c", "echo hidden >&2", relay_stderr=False, stderr_sink=sink
        )
        supervisor.run()
        assert session.process.stderr is None
        assert sink.getvalue() == b""


class TestStopRequests:
    """Control lines and signals stop the backend."""

    def test_control_stop_terminates_backend(self) -> None:
        supervisor, session, coordinator = _supervisor(
            "sleep",
            "5",
            prefix=("docker", "exec", "box"),
            relay_stderr=False,
            control_stream=io.BytesIO(b"STOP\n"),
        )

        status = supervisor.run()

        assert status == 128 + signal.SIGTERM
        assert supervisor.stop_controller.requested
        assert supervisor.stop_controller.reason == "control 'STOP'"
        # Once for the stop request, once after exit
        assert coordinator.terminate.call_count == 2

    def test_signal_handler_requests_stop(self) -> None:
        supervisor, session, coordinator = _supervisor("true")
        process = MagicMock()
        session.attach(process)

        supervisor._handle_signal(signal.SIGINT, None)

        coordinator.terminate.assert_called_once_with(session)
        process.terminate.assert_called_once()
        assert supervisor.stop_controller.reason == "SIGINT"

    def test_signal_handlers_restored(self) -> None:
        before = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
        supervisor, _, _ = _supervisor("true")
        supervisor.run()
        after = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
        assert after == before
