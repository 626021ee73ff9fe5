"""Tests for StopController."""

from unittest.mock import MagicMock, call

from sagewrap.session.cancellation import StopController
from sagewrap.session.models import Session
from sagewrap.session.termination import TerminationCoordinator


def _controller(process=None):
    session = Session("sage1_00000000", "/media/a.ts", exec_prefix=("docker",))
    if process is not None:
        session.attach(process)
    coordinator = MagicMock(spec=TerminationCoordinator)
    return StopController(session, coordinator), session, coordinator


def test_request_terminates_then_signals():
    events = MagicMock()
    process = events.process
    controller, session, coordinator = _controller(process)
    coordinator.terminate.side_effect = events.terminate_remote

    controller.request("SIGTERM")

    assert events.mock_calls == [
        call.terminate_remote(session),
        call.process.terminate(),
    ]
    assert controller.requested
    assert controller.reason == "SIGTERM"


def test_first_reason_is_kept():
    controller, _, coordinator = _controller(MagicMock())
    controller.request("control 'STOP'")
    controller.request("SIGINT")
    assert controller.reason == "control 'STOP'"
    assert coordinator.terminate.call_count == 2


def test_exited_process_is_ignored():
    process = MagicMock()
    process.terminate.side_effect = ProcessLookupError
    controller, _, _ = _controller(process)
    controller.request("SIGTERM")
    process.terminate.assert_called_once()


def test_no_process_yet():
    controller, _, coordinator = _controller()
    controller.request("SIGINT")
    coordinator.terminate.assert_called_once()
    assert controller.requested
