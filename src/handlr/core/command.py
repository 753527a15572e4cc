"""Building and running a handler's command line.

The Exec template of the handler's entry gets the arguments in place of
its first ``%f``/``%u`` field code (any case), or appended when it has
none. Entries that want a terminal get wrapped in a terminal emulator
command unless handlr itself already runs in one.

For display the arguments are joined into the command string. For
spawning the template is split into argv first and the arguments go in
as whole elements, so ``&`` or ``(`` in a URL never reaches a shell.
"""

from __future__ import annotations

import enum
import re
import subprocess
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from handlr.core.bash import split_words
from handlr.core.desktop_entry import DesktopEntry, get_entry
from handlr.core.handler import Handler

log = structlog.get_logger(__name__)

# Only the first occurrence is substituted; later ones are left as-is
FIELD_CODE = re.compile(r"%[fu]", re.IGNORECASE)
MULTI_FIELD_CODES = ("%F", "%U")


class ExecMode(enum.Enum):
    LAUNCH = "launch"  # run the handler, passing all args through at once
    OPEN = "open"  # open files/URLs, once per arg unless the entry takes many


def substitute_args(exec_: str, args: list[str]) -> str:
    """Place args into an Exec template."""
    joined = " ".join(args)
    if FIELD_CODE.search(exec_):
        return FIELD_CODE.sub(lambda _: joined, exec_, count=1)
    return f"{exec_} {joined}"


def supports_multiple(exec_: str) -> bool:
    return any(code in exec_ for code in MULTI_FIELD_CODES)


def splice_args(words: list[str], args: list[str]) -> list[str]:
    """Place args into a split Exec template as separate argv elements.

    A word that is exactly a field code is replaced by the args. A code
    embedded in a longer word (``--url=%u``, a quoted script) gets the
    joined args in place. Without a code the args are appended.
    """
    for index, word in enumerate(words):
        if FIELD_CODE.fullmatch(word):
            return words[:index] + args + words[index + 1:]
        if FIELD_CODE.search(word):
            joined = " ".join(args)
            replaced = FIELD_CODE.sub(lambda _: joined, word, count=1)
            return words[:index] + [replaced] + words[index + 1:]
    return words + args


def shell_argv(template: str, args: list[str]) -> list[str]:
    """argv for a template that needs a shell.

    The args travel as positional parameters, never as script text.
    """
    if FIELD_CODE.search(template):
        script = FIELD_CODE.sub('"$@"', template, count=1)
    else:
        script = f'{template} "$@"'
    return ["sh", "-c", script, "sh", *args]


@dataclass
class CommandBuilder:
    running_in_terminal: bool
    """Whether handlr's own stdout is a terminal."""

    terminal_command: Callable[[], str]
    """Returns the terminal launch prefix, e.g. ``alacritty -e``."""

    def _template(self, entry: DesktopEntry) -> str:
        if entry.terminal and not self.running_in_terminal:
            return f"{self.terminal_command()} {entry.exec}"
        return entry.exec

    def build(self, entry: DesktopEntry, args: list[str]) -> str:
        """Display form: args space-joined into the command line."""
        return substitute_args(self._template(entry), args).strip()

    def build_argv(self, entry: DesktopEntry, args: list[str]) -> list[str]:
        """Spawn form: the template is split first, so args stay literal."""
        template = self._template(entry).strip()
        words = split_words(template)
        if words is None:
            return shell_argv(template, args)
        return splice_args(words, args)

    def get_command(self, handler: Handler, args: list[str]) -> str:
        """The exact command line handler would run for args."""
        return self.build(get_entry(handler), args)

    def execute(self, handler: Handler, mode: ExecMode, args: list[str]) -> None:
        """Run handler's command for args.

        Without multi-file support (and outside Launch mode) the command
        runs once per argument, in order. The first failure propagates
        and the remaining arguments are not attempted.
        """
        entry = get_entry(handler)
        if not args:
            self._run(entry, [])
        elif supports_multiple(entry.exec) or mode is ExecMode.LAUNCH:
            self._run(entry, args)
        else:
            for arg in args:
                self._run(entry, [arg])

    def _run(self, entry: DesktopEntry, args: list[str]) -> None:
        argv = self.build_argv(entry, args)
        log.debug("executing", exec=entry.exec, argv=argv)

        if entry.terminal and self.running_in_terminal:
            # Terminal program in our own terminal: hand it over and wait
            subprocess.run(argv)
        else:
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
