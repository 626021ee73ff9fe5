"""Tests for core subprocess utilities."""

import subprocess

import pytest

from sagewrap.core.subprocess_utils import (
    EXIT_NOT_EXECUTABLE,
    EXIT_NOT_FOUND,
    returncode_for_oserror,
    run_command,
    status_from_returncode,
)


class TestRunCommand:
    """Tests for run_command function."""

    def test_successful_command(self):
        """run_command returns stdout, stderr, returncode for successful command."""
        stdout, stderr, returncode = run_command(["echo", "hello"])

        assert stdout.strip() == "hello"
        assert returncode == 0

    def test_command_failure_returns_non_zero(self):
        """run_command reports a non-zero status without raising."""
        _, _, returncode = run_command(["sh", "-c", "exit 1"])
        assert returncode == 1

    def test_captures_stderr(self):
        """run_command captures stderr output."""
        _, stderr, _ = run_command(["sh", "-c", "echo oops >&2"])
        assert stderr.strip() == "oops"

    def test_stdin_is_not_inherited(self):
        """Helpers never read the wrapper's control stream."""
        stdout, _, returncode = run_command(["cat"])
        assert stdout == ""
        assert returncode == 0

    def test_timeout_raises_exception(self):
        """run_command raises TimeoutExpired for long-running commands."""
        with pytest.raises(subprocess.TimeoutExpired):
            run_command(["sleep", "10"], timeout=0.5)

    def test_missing_executable_raises(self):
        """Spawn failures propagate as OSError."""
        with pytest.raises(FileNotFoundError):
            run_command(["/nonexistent/pkill"])


class TestReturncodeForOSError:
    """Tests for returncode_for_oserror."""

    def test_not_found(self):
        assert returncode_for_oserror(FileNotFoundError()) == EXIT_NOT_FOUND == 127

    def test_other_errors(self):
        assert returncode_for_oserror(PermissionError()) == EXIT_NOT_EXECUTABLE == 126


class TestStatusFromReturncode:
    """Tests for status_from_returncode."""

    @pytest.mark.parametrize("code", [0, 1, 3, 255])
    def test_normal_exit_unchanged(self, code: int):
        assert status_from_returncode(code) == code

    def test_signal_death(self):
        assert status_from_returncode(-15) == 143
        assert status_from_returncode(-9) == 137
