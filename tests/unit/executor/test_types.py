"""Tests for Command and CommandBuilder."""

from sagewrap.executor.types import Arg, ArgKind, Command, CommandBuilder


class TestCommandBuilder:
    """Tests for CommandBuilder."""

    def test_token_kinds(self) -> None:
        command = (
            CommandBuilder()
            .program("docker", "exec", "box", "ffmpeg")
            .flag("-y")
            .option("-i", "in.ts")
            .output()
            .build()
        )
        assert [a.kind for a in command.args] == [
            ArgKind.PROGRAM,
            ArgKind.PROGRAM,
            ArgKind.PROGRAM,
            ArgKind.PROGRAM,
            ArgKind.FLAG,
            ArgKind.FLAG,
            ArgKind.VALUE,
            ArgKind.OUTPUT,
        ]
        assert command.program == "docker"

    def test_option_if_skips_empty(self) -> None:
        command = CommandBuilder().option_if("-ss", "").option_if("-vf", None).build()
        assert command.args == ()

    def test_raw_classifies_flag_value_pairs(self) -> None:
        tokens = ["-hwaccel", "qsv", "-y", "-", "stray"]
        command = CommandBuilder().raw(tokens).build()
        assert command.args == (
            Arg(ArgKind.FLAG, "-hwaccel"),
            Arg(ArgKind.VALUE, "qsv"),
            Arg(ArgKind.FLAG, "-y"),
            Arg(ArgKind.VALUE, "-"),
            Arg(ArgKind.RAW, "stray"),
        )

    def test_verbatim_is_raw(self) -> None:
        command = CommandBuilder().verbatim(["-i", "x"]).build()
        assert {a.kind for a in command.args} == {ArgKind.RAW}


class TestCommand:
    """Tests for Command accessors."""

    def _command(self) -> Command:
        return (
            CommandBuilder()
            .program("ffmpeg")
            .options([("-map", "0:v"), ("-map", "0:a?")])
            .option("-metadata", "title=My Show")
            .output()
            .build()
        )

    def test_option_and_options(self) -> None:
        command = self._command()
        assert command.option("-map") == "0:v"
        assert command.options("-map") == ["0:v", "0:a?"]
        assert command.option("-missing") is None

    def test_has_flag(self) -> None:
        command = self._command()
        assert command.has_flag("-metadata")
        assert not command.has_flag("0:v")

    def test_str_joins_tokens(self) -> None:
        assert str(self._command()).endswith("-metadata title=My Show -")

    def test_shell_quoted(self) -> None:
        assert "'title=My Show'" in self._command().shell_quoted()

    def test_verbatim_tokens_are_not_options(self) -> None:
        command = CommandBuilder().verbatim(["-i", "in.ts"]).build()
        assert command.option("-i") is None
