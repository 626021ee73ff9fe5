"""Tests for cli/exit_codes.py module."""

from sagewrap.cli.exit_codes import ExitCode, exit_code_for_spawn_error
from sagewrap.core.subprocess_utils import EXIT_NOT_EXECUTABLE, EXIT_NOT_FOUND


class TestExitCode:
    """Tests for ExitCode enum."""

    def test_success_is_zero(self) -> None:
        """SUCCESS should be 0."""
        assert ExitCode.SUCCESS == 0

    def test_exit_codes_are_unique(self) -> None:
        """All exit codes should have unique values."""
        values = [int(code) for code in ExitCode]
        assert len(values) == len(set(values))

    def test_config_error_range(self) -> None:
        assert 10 <= ExitCode.CONFIG_ERROR <= 19

    def test_spawn_codes_follow_shell_convention(self) -> None:
        """Spawn failures match what a shell reports for the same problem."""
        assert ExitCode.COMMAND_NOT_FOUND == EXIT_NOT_FOUND == 127
        assert ExitCode.CANNOT_EXECUTE == EXIT_NOT_EXECUTABLE == 126


class TestExitCodeForSpawnError:
    """Tests for exit_code_for_spawn_error."""

    def test_missing_executable(self) -> None:
        error = FileNotFoundError(2, "No such file", "/opt/sagetv/server/ffmpeg.run")
        assert exit_code_for_spawn_error(error) is ExitCode.COMMAND_NOT_FOUND

    def test_not_executable(self) -> None:
        error = PermissionError(13, "Permission denied", "/tmp/ffmpeg")
        assert exit_code_for_spawn_error(error) is ExitCode.CANNOT_EXECUTE

    def test_other_os_errors(self) -> None:
        assert exit_code_for_spawn_error(OSError(8, "Exec format error")) is (
            ExitCode.CANNOT_EXECUTE
        )
