"""Backend command types.

A Command is an ordered, immutable sequence of typed argument tokens. Typing
the tokens keeps flag/value pairs inspectable in tests without re-parsing a
flat string list.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum


class ArgKind(Enum):
    """Role of a token in a backend command."""

    PROGRAM = "program"  # Executable and wrapper prefix (sudo docker exec ...)
    FLAG = "flag"  # -name
    VALUE = "value"  # Value of the preceding flag
    RAW = "raw"  # Opaque token copied from config or upstream
    OUTPUT = "output"  # Output target ("-" for stdout)


@dataclass(frozen=True)
class Arg:
    """A single command token."""

    kind: ArgKind
    text: str


@dataclass(frozen=True)
class Command:
    """Fully resolved backend invocation."""

    args: tuple[Arg, ...]

    @property
    def argv(self) -> list[str]:
        """Token strings, ready for exec."""
        return [arg.text for arg in self.args]

    @property
    def program(self) -> str:
        """First token: the executable actually started."""
        return self.args[0].text

    def option(self, flag: str) -> str | None:
        """Value of the first ``flag`` that is followed by a VALUE token."""
        for i, arg in enumerate(self.args[:-1]):
            if arg.kind is ArgKind.FLAG and arg.text == flag:
                following = self.args[i + 1]
                if following.kind is ArgKind.VALUE:
                    return following.text
        return None

    def options(self, flag: str) -> list[str]:
        """Values of every ``flag`` occurrence, in order."""
        values = []
        for i, arg in enumerate(self.args[:-1]):
            if arg.kind is ArgKind.FLAG and arg.text == flag:
                following = self.args[i + 1]
                if following.kind is ArgKind.VALUE:
                    values.append(following.text)
        return values

    def has_flag(self, flag: str) -> bool:
        """True if ``flag`` appears as a FLAG token."""
        return any(a.kind is ArgKind.FLAG and a.text == flag for a in self.args)

    def __str__(self) -> str:
        return " ".join(self.argv)

    def shell_quoted(self) -> str:
        """Render for copy/paste into a shell."""
        return shlex.join(self.argv)


class CommandBuilder:
    """Accumulates typed tokens and freezes them into a Command.

    Example:
        cmd = (
            CommandBuilder()
            .program("/opt/sagetv/server/ffmpeg.run")
            .option("-f", "mpegts")
            .output("-")
            .build()
        )
    """

    def __init__(self) -> None:
        self._args: list[Arg] = []

    def program(self, *tokens: str) -> CommandBuilder:
        """Append executable/prefix tokens."""
        self._args.extend(Arg(ArgKind.PROGRAM, t) for t in tokens)
        return self

    def flag(self, name: str) -> CommandBuilder:
        """Append a flag without a value."""
        self._args.append(Arg(ArgKind.FLAG, name))
        return self

    def option(self, name: str, value: str) -> CommandBuilder:
        """Append a flag followed by its value."""
        self._args.append(Arg(ArgKind.FLAG, name))
        self._args.append(Arg(ArgKind.VALUE, value))
        return self

    def option_if(self, name: str, value: str | None) -> CommandBuilder:
        """Append ``name value`` only when value is non-empty."""
        if value:
            self.option(name, value)
        return self

    def options(self, pairs: Iterable[tuple[str, str]]) -> CommandBuilder:
        """Append several flag/value pairs."""
        for name, value in pairs:
            self.option(name, value)
        return self

    def raw(self, tokens: Iterable[str]) -> CommandBuilder:
        """Append opaque tokens, classifying ``-x`` tokens as flags.

        A token that follows a flag and does not itself start with ``-`` is
        treated as that flag's value, so ``-look_ahead 1`` stays inspectable.
        """
        previous_flag = False
        for token in tokens:
            if token.startswith("-") and len(token) > 1:
                self._args.append(Arg(ArgKind.FLAG, token))
                previous_flag = True
            elif previous_flag:
                self._args.append(Arg(ArgKind.VALUE, token))
                previous_flag = False
            else:
                self._args.append(Arg(ArgKind.RAW, token))
        return self

    def verbatim(self, tokens: Iterable[str]) -> CommandBuilder:
        """Append tokens as RAW without interpretation."""
        self._args.extend(Arg(ArgKind.RAW, t) for t in tokens)
        return self

    def output(self, target: str = "-") -> CommandBuilder:
        """Append the output target."""
        self._args.append(Arg(ArgKind.OUTPUT, target))
        return self

    def build(self) -> Command:
        """Freeze the accumulated tokens."""
        return Command(tuple(self._args))
